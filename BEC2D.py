import time
from collections import namedtuple
import numpy as np
from spectralPDE import (Simulator2D, OperatorSum, Domains, HDFOutput, split_step, format_float,
                         ConfigurationError, NormalisationError)


_GPEParameters = namedtuple('_GPEParameters', ['x_max', 'nx', 'ny', 'omega_x', 'omega_y', 'Omega', 'm', 'g',
                                               'px', 'py', 'sigma_x', 'sigma_y', 'winding',
                                               't_step', 't_final', 'dt'])


class GPEParameters(_GPEParameters):
    """Immutable set of parameters for a rotating, trapped condensate in
    natural units (hbar = 1). The defaults are the reference scenario: a
    slightly asymmetric trap rotating at 0.6 of the trap frequency, with a
    doubly wound vortex imprinted on a wide Gaussian."""
    __slots__ = ()

    def __new__(cls, x_max=5.0, nx=64, ny=64, omega_x=1.0, omega_y=1.001, Omega=0.6, m=1.0, g=100.0,
                px=0.0, py=0.0, sigma_x=3.0, sigma_y=3.0, winding=2, t_step=0.4, t_final=4.0, dt=0.01):
        self = _GPEParameters.__new__(cls, x_max, nx, ny, omega_x, omega_y, Omega, m, g,
                                      px, py, sigma_x, sigma_y, winding, t_step, t_final, dt)
        self._validate()
        return self

    def _validate(self):
        for name in ['x_max', 'omega_x', 'omega_y', 'm', 'sigma_x', 'sigma_y', 't_step', 'dt']:
            value = getattr(self, name)
            if not np.isfinite(value) or not value > 0:
                raise ConfigurationError("%s must be positive, got %r" % (name, value))
        for name in ['nx', 'ny']:
            value = getattr(self, name)
            if int(value) != value or value < 2:
                raise ConfigurationError("%s must be an integer of at least 2, got %r" % (name, value))
        if int(self.winding) != self.winding:
            raise ConfigurationError("winding must be an integer, got %r" % (self.winding,))
        for name in ['Omega', 'g', 'px', 'py']:
            if not np.isfinite(getattr(self, name)):
                raise ConfigurationError("%s must be finite" % name)
        if not self.t_final >= 0:
            raise ConfigurationError("t_final must be non-negative, got %r" % (self.t_final,))

    def checkpoints(self):
        """Arithmetic progression of checkpoint times from 0 in steps of
        t_step, up to and not past t_final"""
        n_intervals = int(np.floor(self.t_final / self.t_step + 1e-9))
        return np.linspace(0, n_intervals * self.t_step, n_intervals + 1)


class DynamicHamiltonian:
    def __init__(self, bec2d, H_linear, g, renormalise=True):
        """The state dependent Hamiltonian H_linear + g|psi|^2. Calling it as
        H(t, psi) renormalises psi in place (unless renormalise is False),
        recomputes the interaction term from the new psi, and returns the
        total Hamiltonian as an OperatorSum. The interaction term is stored
        in a buffer that is only ever written to by this object."""
        self.bec2d = bec2d
        self.H_linear = H_linear
        self.g = g
        self.renormalise = renormalise
        self.H_local_nonlin = np.zeros(bec2d.simulator.shape)

    def __call__(self, t, psi):
        if self.renormalise:
            self.bec2d.normalise(psi, 1)
        # psi is normalised so that |psi|^2 is the density, the interaction
        # term needs no further factors of dx or dy:
        np.multiply(self.g, np.abs(psi)**2, out=self.H_local_nonlin)
        return self.H_linear + OperatorSum({Domains.POSITION: self.H_local_nonlin})


class BEC2D:
    def __init__(self, simulator, natural_units=True):
        self.simulator = simulator
        self.natural_units = natural_units
        self.dx = simulator.dx
        self.dy = simulator.dy
        self.x = simulator.x
        self.y = simulator.y

        if natural_units:
            self.hbar = 1
            self.time_units = 'time units'
        else:
            self.hbar = 1.054571726e-34
            self.time_units = 's'

    def kinetic(self, m):
        """Kinetic energy (Px^2 + Py^2)/2m, held as one term per axis so
        that each is diagonal in a domain transformed along that axis only"""
        if not m > 0:
            raise ConfigurationError("Mass must be positive, got %r" % (m,))
        return OperatorSum({Domains.MOMENTUM_X: (self.hbar * self.simulator.kx)**2 / (2*m),
                            Domains.MOMENTUM_Y: (self.hbar * self.simulator.ky)**2 / (2*m)})

    def harmonic_trap(self, m, omega_x, omega_y):
        """1/2 m (omega_x^2 x^2 + omega_y^2 y^2)"""
        if not omega_x > 0 or not omega_y > 0:
            raise ConfigurationError("Trap frequencies must be positive, got %r, %r" % (omega_x, omega_y))
        V = 0.5 * m * (omega_x**2 * self.x**2 + omega_y**2 * self.y**2)
        return OperatorSum({Domains.POSITION: V})

    def rotation(self, Omega):
        """-Omega Lz, the extra term in a frame rotating counterclockwise
        about the z axis at angular frequency Omega"""
        return -Omega * self.hbar * self.simulator.LZ

    def compute_number(self, psi):
        ncalc = self.simulator.vdot(psi, psi).real * self.dx * self.dy
        return ncalc

    def normalise(self, psi, N_2D=1):
        """Normalise psi to the 2D normalisation constant N_2D. Modifies psi
        in-place and returns None."""
        ncalc = self.compute_number(psi)
        if not np.isfinite(ncalc) or not ncalc > 0:
            raise NormalisationError("Cannot normalise a wavefunction with norm %r" % (ncalc,))
        psi[:] *= np.sqrt(N_2D/ncalc)

    def compute_energy(self, psi, H):
        """Total energy of psi for a DynamicHamiltonian H. Differs from the
        expectation value of H in that the nonlinear term is halved in order
        to avoid double counting the interaction energy"""
        E_total_psi = H.H_linear.apply(psi) + 0.5 * H.g * np.abs(psi)**2 * psi
        Ecalc = self.simulator.vdot(psi, E_total_psi).real * self.dx * self.dy
        return Ecalc

    def compute_mu(self, psi, H):
        """Approximate chemical potential <psi|H|psi>/N for a DynamicHamiltonian H"""
        ncalc = self.compute_number(psi)
        H_psi = H.H_linear.apply(psi) + H.g * np.abs(psi)**2 * psi
        mucalc = self.simulator.vdot(psi, H_psi) * self.dx * self.dy / ncalc
        return mucalc.real

    def compute_angular_momentum(self, psi):
        """Expectation value of Lz per particle"""
        ncalc = self.compute_number(psi)
        Lz_psi = self.hbar * self.simulator.LZ.apply(psi)
        return (self.simulator.vdot(psi, Lz_psi) * self.dx * self.dy / ncalc).real

    def gaussian_wavepacket(self, x0=0, y0=0, px=0, py=0, sigma_x=1, sigma_y=1):
        """A normalised, separable Gaussian centred at (x0, y0) with mean
        momentum (px, py). sigma_x and sigma_y are the widths of the
        amplitude, so that sigma = sqrt(hbar/(m omega)) gives the groundstate
        of a harmonic trap."""
        if not sigma_x > 0 or not sigma_y > 0:
            raise ConfigurationError("Wavepacket widths must be positive, got %r, %r" % (sigma_x, sigma_y))
        psi_x = np.exp(-(self.x - x0)**2 / (2 * sigma_x**2) + 1j * px * self.x / self.hbar)
        psi_y = np.exp(-(self.y - y0)**2 / (2 * sigma_y**2) + 1j * py * self.y / self.hbar)
        psi = psi_x * psi_y
        self.normalise(psi, 1)
        return psi

    def imprint_vortex(self, psi, winding, cx=None, cy=None):
        """Returns psi multiplied by the phase exp(i winding theta), theta
        being the polar angle about (cx, cy), which defaults to the centre of
        the grid. Positive winding is counterclockwise, the sense favoured by
        rotation(Omega) with Omega > 0; using atan2(x - cx, y - cy) with +Omega
        Lz instead would describe the mirror image. Leaves the density
        unchanged."""
        if int(winding) != winding:
            raise ConfigurationError("Winding number must be an integer, got %r" % (winding,))
        if not winding:
            return np.array(psi, dtype=complex)
        centre_x, centre_y = self.simulator.centre
        if cx is None:
            cx = centre_x
        if cy is None:
            cy = centre_y
        return psi * np.exp(1j * winding * np.arctan2(self.y - cy, self.x - cx))

    def find_groundstate(self, H, psi, dt, checkpoints, output_directory=None, post_step_callback=None):
        """Find the groundstate by propagating psi in imaginary time. H should
        be a DynamicHamiltonian, so that psi is renormalised every step.
        Returns the list of states at the checkpoint times."""
        return self.evolve(H, psi, dt, checkpoints, imaginary_time=True,
                           output_directory=output_directory, post_step_callback=post_step_callback)

    def evolve(self, H, psi, dt, checkpoints, imaginary_time=False,
               output_directory=None, post_step_callback=None):
        """Evolve a wavefunction in time with the split-step method. The
        Hamiltonian H (a DynamicHamiltonian), the initial wavefunction, the
        maximum timestep and the checkpoint times are required. In imaginary
        time psi is also normalised at each checkpoint. Statistics are
        printed at each checkpoint, and if output_directory is not None, psi
        and the statistics are saved there in HDF5 format. Returns the list of
        states at the checkpoint times."""
        checkpoints = np.asarray(checkpoints, dtype=float)
        print('\n==========')
        if imaginary_time:
            print("Beginning {}{} of imaginary time evolution".format(format_float(checkpoints[-1]), self.time_units))
        else:
            print("Beginning {}{} of time evolution".format(format_float(checkpoints[-1]), self.time_units))
        print('Using dt = {}{}'.format(format_float(dt), self.time_units))
        print('{} checkpoints'.format(len(checkpoints)))
        print('==========')

        previous = []

        def output_callback(i, t, psi, checkpoint):
            energy = self.compute_energy(psi, H)
            number = self.compute_number(psi)
            if previous:
                change = np.sqrt(self.compute_number(psi - previous[-1]))
            else:
                change = np.nan
            previous[:] = [psi.copy()]
            time_per_step = (time.time() - start_time)/i if i else np.nan

            output_log_dtype = [('checkpoint', int), ('step_number', int), ('time', float), ('energy', float),
                                ('number', float), ('change', float), ('time_per_step', float)]
            output_log_data = np.array((checkpoint, i, t, energy, number, change, time_per_step),
                                       dtype=output_log_dtype)
            if output_directory is not None:
                hdf_output.save(psi, output_log_data)

            log_time_units = '' if self.natural_units else self.time_units
            message = ('checkpoint: %d' % checkpoint +
                       '  step: %d' % i +
                       '  t = {}'.format(format_float(t, units=log_time_units)) +
                       '  energy: ' + repr(energy) +
                       '  number: %.09f' % number +
                       '  change: %.02E' % change +
                       '  time per step: {}'.format(format_float(time_per_step, units='s')))
            print(message)

        if output_directory is not None:
            hdf_output = HDFOutput(self.simulator, output_directory)

        if imaginary_time:
            def normalise(psi):
                self.normalise(psi, 1)
        else:
            normalise = None

        start_time = time.time()
        try:
            states = split_step(dt, checkpoints, H, psi, hbar=self.hbar, imaginary_time=imaginary_time,
                                normalise=normalise, output_callback=output_callback,
                                post_step_callback=post_step_callback)
        finally:
            if output_directory is not None:
                hdf_output.close()
        return states


def rotating_condensate(params):
    """Build the simulator, the BEC2D instance, the Hamiltonian and the
    initial state (a Gaussian with a vortex of the requested winding
    imprinted at the centre) for the given GPEParameters"""
    simulator = Simulator2D(params.x_max, params.x_max, params.nx, params.ny)
    bec2d = BEC2D(simulator, natural_units=True)
    H_linear = (bec2d.kinetic(params.m) +
                bec2d.harmonic_trap(params.m, params.omega_x, params.omega_y) +
                bec2d.rotation(params.Omega))
    H = DynamicHamiltonian(bec2d, H_linear, params.g)
    psi = bec2d.gaussian_wavepacket(0, 0, params.px, params.py, params.sigma_x, params.sigma_y)
    psi = bec2d.imprint_vortex(psi, params.winding)
    return bec2d, H, psi
