# Checks imaginary time propagation against the exact groundstate of an
# asymmetric harmonic trap with no interactions and no rotation.

# Run with 'python harmonic_groundstate.py'

import sys
sys.path.insert(0, '../..') # The location of the modules we need to import

import numpy as np

from spectralPDE import Simulator2D
from BEC2D import BEC2D, DynamicHamiltonian


nx = ny = 64
x_max = y_max = 6

omega_x = 1.0
omega_y = 1.2
m = 1.0

simulator = Simulator2D(x_max, y_max, nx, ny)
bec2d = BEC2D(simulator, natural_units=True)

x = simulator.x
y = simulator.y

H_linear = bec2d.kinetic(m) + bec2d.harmonic_trap(m, omega_x, omega_y)
H = DynamicHamiltonian(bec2d, H_linear, g=0)


if __name__ == '__main__':
    # A symmetric Gaussian that is too wide:
    psi = bec2d.gaussian_wavepacket(sigma_x=1.5, sigma_y=1.5)

    states = bec2d.find_groundstate(H, psi, dt=0.01, checkpoints=np.linspace(0, 10, 11))
    psi = states[-1]

    psi_exact = bec2d.gaussian_wavepacket(sigma_x=np.sqrt(1/(m*omega_x)), sigma_y=np.sqrt(1/(m*omega_y)))

    print('Integral:', repr(bec2d.compute_number(psi)))
    print('Energy:', repr(bec2d.compute_energy(psi, H)))
    print('Exact energy:', repr(0.5*(omega_x + omega_y)))
    print('Max error in psi:', np.abs(psi - psi_exact).max())
