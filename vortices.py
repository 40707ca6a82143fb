"""Locating vortices in a 2D wavefunction from its phase winding and density.

Arrays are indexed [i, j] with i along x and j along y, as in Simulator2D.
Windings are counterclockwise in the x-y plane, so a vortex imprinted with
BEC2D.imprint_vortex(psi, n) has winding n.
"""
import numpy as np
from scipy.ndimage import minimum_filter, maximum_filter


def _phase_step(psi_from, psi_to):
    """Phase difference between neighbouring points, wrapped to (-pi, pi]"""
    return np.angle(psi_to * psi_from.conj())


def winding_number(psi, i_min, i_max, j_min, j_max):
    """The number of times the phase of psi winds by 2 pi going
    counterclockwise around the rectangle of grid points with corners
    (i_min, j_min) and (i_max, j_max)"""
    if not (i_min < i_max and j_min < j_max):
        raise ValueError("Need i_min < i_max and j_min < j_max")
    n_i = i_max - i_min
    n_j = j_max - j_min
    i_path = np.concatenate([np.arange(i_min, i_max), np.full(n_j, i_max),
                             np.arange(i_max, i_min, -1), np.full(n_j, i_min)])
    j_path = np.concatenate([np.full(n_i, j_min), np.arange(j_min, j_max),
                             np.full(n_i, j_max), np.arange(j_max, j_min, -1)])
    values = psi[i_path, j_path]
    total_phase = _phase_step(values, np.roll(values, -1)).sum()
    return int(np.round(total_phase / (2 * np.pi)))


def loop_indices(x, y, centre, half_width):
    """Grid indices (i_min, i_max, j_min, j_max) of the square of half width
    half_width about centre, clipped to the grid"""
    x = np.asarray(x).ravel()
    y = np.asarray(y).ravel()
    cx, cy = centre
    i_min = max(int(np.argmin(np.abs(x - (cx - half_width)))), 0)
    i_max = min(int(np.argmin(np.abs(x - (cx + half_width)))), len(x) - 1)
    j_min = max(int(np.argmin(np.abs(y - (cy - half_width)))), 0)
    j_max = min(int(np.argmin(np.abs(y - (cy + half_width)))), len(y) - 1)
    return i_min, i_max, j_min, j_max


def plaquette_charges(psi):
    """Winding number around each square of four neighbouring grid points.
    Returns an integer array of shape (nx - 1, ny - 1). Summed over any
    rectangle, these give the winding around its boundary."""
    a = psi[:-1, :-1]
    b = psi[1:, :-1]
    c = psi[1:, 1:]
    d = psi[:-1, 1:]
    total_phase = _phase_step(a, b) + _phase_step(b, c) + _phase_step(c, d) + _phase_step(d, a)
    return np.round(total_phase / (2 * np.pi)).astype(int)


def find_vortices(psi, x, y, centre=(0, 0), radius=np.inf, min_density=0.0, size=7):
    """Returns a list of (x, y, charge) for every plaquette with non-zero
    winding within radius of centre. A vortex core has near zero density
    itself, so plaquettes are judged by the largest mean plaquette density in
    the size x size neighbourhood about them: those below min_density times
    the peak density are ignored, which excludes the 'ghost' vortices that
    sit outside a rotating condensate."""
    x = np.asarray(x).reshape((-1, 1))
    y = np.asarray(y).reshape((1, -1))
    charges = plaquette_charges(psi)
    rho = np.abs(psi)**2
    rho_plaquette = 0.25 * (rho[:-1, :-1] + rho[1:, :-1] + rho[1:, 1:] + rho[:-1, 1:])
    x_plaquette = 0.5 * (x[:-1] + x[1:])
    y_plaquette = 0.5 * (y[:, :-1] + y[:, 1:])
    cx, cy = centre
    r2 = (x_plaquette - cx)**2 + (y_plaquette - cy)**2
    rho_surroundings = maximum_filter(rho_plaquette, size=size, mode='nearest')
    mask = (charges != 0) & (r2 < radius**2) & (rho_surroundings >= min_density * rho.max())
    i_vortex, j_vortex = np.nonzero(mask)
    return [(x_plaquette[i, 0], y_plaquette[0, j], charges[i, j]) for i, j in zip(i_vortex, j_vortex)]


def density_minima(psi, x, y, centre=(0, 0), radius=np.inf, size=3):
    """Returns a list of (x, y) of the local minima of |psi|^2 within radius
    of centre, a minimum being a point no larger than any other in the size x
    size neighbourhood about it"""
    x = np.asarray(x).reshape((-1, 1))
    y = np.asarray(y).reshape((1, -1))
    rho = np.abs(psi)**2
    is_minimum = rho == minimum_filter(rho, size=size, mode='nearest')
    cx, cy = centre
    r2 = (x - cx)**2 + (y - cy)**2
    i_min, j_min = np.nonzero(is_minimum & (r2 < radius**2))
    return [(x[i, 0], y[0, j]) for i, j in zip(i_min, j_min)]
