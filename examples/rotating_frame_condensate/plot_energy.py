# Plots the convergence of the groundstate found by run_example.py.
# Run from the top level directory with
#     python examples/rotating_frame_condensate/plot_energy.py

import sys
sys.path.insert(0, '.')

from spectralPDE import HDFOutput

import matplotlib.pyplot as plt


log = HDFOutput.output_log('groundstate')

plt.title('energy')
plt.plot(log['time'], log['energy'], 'o-')
plt.xlabel('imaginary time')
plt.grid(True)

plt.figure()

plt.title('change in psi per checkpoint')
plt.semilogy(log['time'][1:], log['change'][1:], 'o-')
plt.xlabel('imaginary time')
plt.grid(True)
plt.show()
