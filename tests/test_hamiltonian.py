"""
Test the trap, kinetic and rotation terms and the DynamicHamiltonian
"""
import numpy as np
import pytest

from spectralPDE import Simulator2D, Domains, ConfigurationError, NormalisationError
from BEC2D import BEC2D, DynamicHamiltonian, GPEParameters, rotating_condensate
from vortices import winding_number, loop_indices


@pytest.fixture
def bec2d():
    return BEC2D(Simulator2D(6, 6, 64, 64), natural_units=True)


def make_H(bec2d, g=100.0, Omega=0.6, omega_x=1.0, omega_y=1.001, renormalise=True):
    H_linear = (bec2d.kinetic(1.0) + bec2d.harmonic_trap(1.0, omega_x, omega_y) +
                bec2d.rotation(Omega))
    return DynamicHamiltonian(bec2d, H_linear, g, renormalise=renormalise)


def test_trap(bec2d):
    V = bec2d.harmonic_trap(2.0, 1.0, 1.5)[Domains.POSITION]
    assert np.allclose(V, 0.5 * 2.0 * (bec2d.x**2 + 2.25 * bec2d.y**2))


def test_rotation_sign(bec2d):
    H_rot = bec2d.rotation(0.5)
    simulator = bec2d.simulator
    assert np.allclose(H_rot[Domains.MOMENTUM_Y], -0.5 * simulator.x * simulator.ky)
    assert np.allclose(H_rot[Domains.MOMENTUM_X], 0.5 * simulator.y * simulator.kx)


@pytest.mark.parametrize("method, args", [("kinetic", (0,)), ("harmonic_trap", (1, 0, 1)),
                                          ("harmonic_trap", (1, 1, -1))])
def test_invalid_physical_parameters(bec2d, method, args):
    with pytest.raises(ConfigurationError):
        getattr(bec2d, method)(*args)


def test_renormalises(bec2d):
    H = make_H(bec2d)
    psi = 3 * bec2d.gaussian_wavepacket(sigma_x=2, sigma_y=2)
    H(0, psi)
    assert np.isclose(bec2d.compute_number(psi), 1, atol=1e-12)


def test_nonlinear_term(bec2d):
    H = make_H(bec2d, g=37.0)
    psi = 0.1 * bec2d.imprint_vortex(bec2d.gaussian_wavepacket(sigma_x=2, sigma_y=1.5), 1)
    operator = H(0, psi)
    assert np.allclose(H.H_local_nonlin, 37.0 * np.abs(psi)**2)
    # The same thing in terms of discrete amplitudes summing to one in norm:
    a = psi * np.sqrt(bec2d.dx * bec2d.dy)
    assert np.isclose(np.sum(np.abs(a)**2), 1)
    assert np.allclose(H.H_local_nonlin, 37.0 * np.abs(a)**2 / bec2d.dx**2)
    # Total position space term is trap plus interaction:
    V = bec2d.harmonic_trap(1.0, 1.0, 1.001)[Domains.POSITION]
    assert np.allclose(operator[Domains.POSITION], V + 37.0 * np.abs(psi)**2)


def test_nonlinear_buffer_not_shared(bec2d):
    H = make_H(bec2d)
    psi = bec2d.gaussian_wavepacket(sigma_x=2, sigma_y=2)
    first = H(0, psi)
    first_position = first[Domains.POSITION].copy()
    assert first[Domains.POSITION] is not H.H_local_nonlin
    psi2 = bec2d.gaussian_wavepacket(sigma_x=1, sigma_y=1)
    H(0, psi2)
    assert np.array_equal(first[Domains.POSITION], first_position)


def test_renormalisation_idempotent(bec2d):
    H = make_H(bec2d)
    psi = bec2d.imprint_vortex(bec2d.gaussian_wavepacket(sigma_x=2, sigma_y=2), 2)
    original = psi.copy()
    for _ in range(5):
        H(0, psi)
        assert np.isclose(bec2d.compute_number(psi), 1, atol=1e-12)
    assert np.allclose(psi, original)


def test_without_renormalisation(bec2d):
    H = make_H(bec2d, renormalise=False)
    psi = 2 * bec2d.gaussian_wavepacket(sigma_x=2, sigma_y=2)
    original = psi.copy()
    H(0, psi)
    assert np.array_equal(psi, original)


@pytest.mark.parametrize("fill", [0, np.nan])
def test_degenerate_state(bec2d, fill):
    H = make_H(bec2d)
    psi = np.full(bec2d.simulator.shape, fill, dtype=complex)
    with pytest.raises(NormalisationError):
        H(0, psi)


def test_groundstate_energy(bec2d):
    H = make_H(bec2d, g=0, Omega=0, omega_x=1.0, omega_y=1.2)
    psi = bec2d.gaussian_wavepacket(sigma_x=1, sigma_y=np.sqrt(1/1.2))
    assert np.isclose(bec2d.compute_energy(psi, H), 0.5 * (1.0 + 1.2), atol=1e-8)
    assert np.isclose(bec2d.compute_mu(psi, H), 0.5 * (1.0 + 1.2), atol=1e-8)


def test_interaction_energy_halved(bec2d):
    H = make_H(bec2d, g=10, Omega=0)
    psi = bec2d.gaussian_wavepacket(sigma_x=1, sigma_y=1)
    interaction = 10 * np.sum(np.abs(psi)**4) * bec2d.dx * bec2d.dy
    assert np.isclose(bec2d.compute_mu(psi, H) - bec2d.compute_energy(psi, H), 0.5 * interaction)


def test_angular_momentum(bec2d):
    psi = (bec2d.x + 1j * bec2d.y)**2 * np.exp(-(bec2d.x**2 + bec2d.y**2) / 2)
    assert np.isclose(bec2d.compute_angular_momentum(psi), 2, atol=1e-8)


def test_parameters_defaults():
    params = GPEParameters()
    assert (params.x_max, params.nx, params.ny) == (5.0, 64, 64)
    assert params.omega_y == 1.001
    checkpoints = params.checkpoints()
    assert len(checkpoints) == 11
    assert checkpoints[0] == 0
    assert np.isclose(checkpoints[-1], 4.0)
    assert np.allclose(np.diff(checkpoints), 0.4)


@pytest.mark.parametrize("t_final, t_step, expected", [(1.0, 0.6, [0.0, 0.6]),
                                                        (1.0, 0.4, [0.0, 0.4, 0.8]),
                                                        (1.2, 0.4, [0.0, 0.4, 0.8, 1.2]),
                                                        (4.0, 0.4, np.linspace(0, 4, 11)),
                                                        (0.0, 0.5, [0.0])])
def test_checkpoints_never_pass_t_final(t_final, t_step, expected):
    checkpoints = GPEParameters(t_final=t_final, t_step=t_step).checkpoints()
    assert np.allclose(checkpoints, expected)
    assert checkpoints[-1] <= t_final + 1e-12
    assert np.allclose(np.diff(checkpoints), t_step)


def test_parameters_are_immutable():
    params = GPEParameters()
    with pytest.raises(AttributeError):
        params.g = 5


@pytest.mark.parametrize("kwargs", [dict(x_max=0), dict(nx=1), dict(ny=12.5), dict(sigma_x=0),
                                    dict(sigma_y=-3), dict(m=0), dict(omega_x=-1), dict(winding=1.5),
                                    dict(dt=0), dict(t_step=0), dict(t_final=-1), dict(g=np.nan)])
def test_invalid_parameters(kwargs):
    with pytest.raises(ConfigurationError):
        GPEParameters(**kwargs)


def test_rotating_condensate_initial_state():
    params = GPEParameters()
    bec2d, H, psi = rotating_condensate(params)
    assert np.isclose(bec2d.compute_number(psi), 1, atol=1e-9)
    loop = loop_indices(bec2d.x, bec2d.y, bec2d.simulator.centre, 2.0)
    assert winding_number(psi, *loop) == 2
    assert H.g == 100.0
