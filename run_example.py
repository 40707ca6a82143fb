# Finds the groundstate of a rotating condensate with a doubly wound vortex
# imprinted on the initial state. Run with 'python run_example.py', then
# 'python plot_example.py' to make images of the checkpoints.

from BEC2D import GPEParameters, rotating_condensate
from vortices import find_vortices, density_minima, winding_number, loop_indices


params = GPEParameters(x_max=5.0,                 # Grid covers [-x_max, x_max) in x and y
                       nx=64, ny=64,
                       omega_x=1.0,
                       omega_y=1.0 * (1 + 1e-3),  # Breaks the symmetry of the trap slightly
                       Omega=0.6,                 # Rotation rate
                       m=1.0,
                       g=100.0,                   # Interaction constant
                       sigma_x=3.0, sigma_y=3.0,  # Widths of the initial Gaussian
                       winding=2,                 # Vortex imprinted at the centre
                       t_step=0.4, t_final=4.0,   # Checkpoint times
                       dt=0.01)                   # Maximum imaginary timestep


if __name__ == '__main__':
    bec2d, H, psi = rotating_condensate(params)
    simulator = bec2d.simulator
    x = simulator.x
    y = simulator.y

    states = bec2d.find_groundstate(H, psi, params.dt, params.checkpoints(), output_directory='groundstate')
    psi = states[-1]

    centre = simulator.centre
    print('\nFinal number:', repr(bec2d.compute_number(psi)))
    print('Final energy:', repr(bec2d.compute_energy(psi, H)))
    print('Final <Lz>:', repr(bec2d.compute_angular_momentum(psi)))
    print('Winding about the centre:', winding_number(psi, *loop_indices(x, y, centre, 2.0)))
    for x_v, y_v, charge in find_vortices(psi, x, y, centre, radius=2.0, min_density=0.05):
        print('vortex at (%+.3f, %+.3f) with charge %+d' % (x_v, y_v, charge))
    for x_m, y_m in density_minima(psi, x, y, centre, radius=2.0):
        print('density minimum at (%+.3f, %+.3f)' % (x_m, y_m))
