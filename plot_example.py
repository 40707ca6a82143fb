# To be run after run_example.py:
#     python plot_example.py

import os

from spectralPDE import HDFOutput, Simulator2D
from plotting import plot, plot_density_and_phase
import h5py


def plot_sim(name):
    output_dir = name + '_images'
    if not os.path.isdir(output_dir):
        os.mkdir(output_dir)
    with h5py.File(os.path.join(name, 'output.h5'), 'r') as f:
        simulator = Simulator2D(f.attrs['x_max'], f.attrs['y_max'], f.attrs['nx'], f.attrs['ny'])
    log = HDFOutput.output_log(name)
    for i, psi in HDFOutput.iterframes(name):
        print(name, i)
        plot(os.path.join(output_dir, '%04d.png' % i), psi)
        plot_density_and_phase(os.path.join(output_dir, 'heatmap_%04d.png' % i),
                               simulator.x, simulator.y, psi, title='t = %.2f' % log['time'][i])

if __name__ == '__main__':
    plot_sim('groundstate')
