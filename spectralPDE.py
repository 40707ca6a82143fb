import os
import enum
import numpy as np
import h5py
from scipy.fftpack import fft, ifft, fft2, ifft2


class ConfigurationError(ValueError):
    """Invalid grid, physical or time parameters"""


class NormalisationError(ArithmeticError):
    """A wavefunction with zero or non-finite norm"""


class DivergenceError(RuntimeError):
    def __init__(self, checkpoint, t):
        self.checkpoint = checkpoint
        self.t = t
        msg = ('It exploded :( NaN or Inf in psi at t = {} '.format(t) +
               'while advancing to checkpoint {}. '.format(checkpoint) +
               'Reduce dt or check the operator decomposition.')
        RuntimeError.__init__(self, msg)


def format_float(x, sigfigs=4, units=''):
    """Returns a string of the float f with a limited number of sig figs and a metric prefix"""

    prefixes = { -24: "y", -21: "z", -18: "a", -15: "f", -12: "p", -9: "n", -6: "u", -3: "m",
        0: "", 3: "k", 6: "M", 9: "G", 12: "T", 15: "P", 18: "E", 21: "Z", 24: "Y" }

    if np.isnan(x) or np.isinf(x):
        return str(x)

    if x != 0:
        exponent = int(np.floor(np.log10(np.abs(x))))
        # Only multiples of 10^3
        exponent = int(np.floor(exponent / 3) * 3)
    else:
        exponent = 0

    significand = x / 10 ** exponent
    pre_decimal, post_decimal = divmod(significand, 1)
    digits = sigfigs - len(str(int(pre_decimal)))
    significand = round(significand, digits)
    result = str(significand)
    if exponent:
        try:
            prefix = prefixes[exponent]
            result += ' ' + prefix
        except KeyError:
            result += 'e' + str(exponent)
            if units:
                result += ' '
    elif units:
        result += ' '
    return result + units


# The spaces an operator can be diagonal in. The order here is the order in
# which split-step propagation visits them.
class Domains(enum.IntEnum):
    POSITION = 0    # (x, y)
    MOMENTUM_X = 1  # (kx, y), Fourier transformed along x only
    MOMENTUM_Y = 2  # (x, ky), Fourier transformed along y only
    MOMENTUM = 3    # (kx, ky)


def to_domain(psi, domain):
    """Transform psi from position space into the given domain"""
    if domain == Domains.POSITION:
        return psi
    elif domain == Domains.MOMENTUM_X:
        return fft(psi, axis=0)
    elif domain == Domains.MOMENTUM_Y:
        return fft(psi, axis=1)
    elif domain == Domains.MOMENTUM:
        return fft2(psi)
    raise ValueError(domain)


def from_domain(psi, domain):
    """Transform psi from the given domain back into position space"""
    if domain == Domains.POSITION:
        return psi
    elif domain == Domains.MOMENTUM_X:
        return ifft(psi, axis=0)
    elif domain == Domains.MOMENTUM_Y:
        return ifft(psi, axis=1)
    elif domain == Domains.MOMENTUM:
        return ifft2(psi)
    raise ValueError(domain)


class OperatorSum(dict):
    """Class for representing a sum of operators, each diagonal in one of the
    Domains. Keys are Domains members and values are the diagonal
    coefficients in that domain, as numpy arrays broadcastable to the shape
    of psi. A POSITION entry is a plain diagonal operator, any other entry
    is a composite of a forward transform, a diagonal core and the inverse
    transform. Supports arithmetic operations, entries in the same domain
    are merged."""
    def __add__(self, other):
        new = OperatorSum(self)
        for domain, coefficient in other.items():
            new[domain] = new.get(domain, 0) + coefficient
        return new

    def __sub__(self, other):
        new = OperatorSum(self)
        for domain, coefficient in other.items():
            new[domain] = new.get(domain, 0) - coefficient
        return new

    def __neg__(self):
        return self * -1

    def __mul__(self, factor):
        new = OperatorSum(self)
        for domain, coefficient in new.items():
            new[domain] = coefficient*factor
        return new

    def __truediv__(self, factor):
        new = OperatorSum(self)
        for domain, coefficient in new.items():
            new[domain] = coefficient/factor
        return new

    __radd__ = __add__
    __rmul__ = __mul__

    def __rsub__(self, other):
        return OperatorSum(other) - self

    @property
    def domains(self):
        return sorted(self)

    def apply(self, psi):
        """Return the result of the operator acting on psi. Each term is
        applied in its own domain and transformed back to position space."""
        result = np.zeros(psi.shape, dtype=complex)
        for domain in self.domains:
            result += from_domain(self[domain] * to_domain(psi, domain), domain)
        return result

    def exponentiate(self, factor):
        """Returns a dict of exp(factor * coefficient) for each domain"""
        return {domain: np.exp(factor * self[domain]) for domain in self.domains}

    def split_step(self, psi, factor):
        """Advance psi by exp(factor * operator) using a symmetric (Strang)
        product of the per-domain exponentials: half steps in domain order,
        a full step in the last domain, and half steps back again. Exact if
        all terms commute, second order accurate in factor otherwise."""
        domains = self.domains
        if not domains:
            return psi
        U_half = self.exponentiate(0.5*factor)
        U_full = np.exp(factor * self[domains[-1]])
        for domain in domains[:-1]:
            psi = from_domain(U_half[domain] * to_domain(psi, domain), domain)
        psi = from_domain(U_full * to_domain(psi, domains[-1]), domains[-1])
        for domain in reversed(domains[:-1]):
            psi = from_domain(U_half[domain] * to_domain(psi, domain), domain)
        return psi


class Simulator2D:
    def __init__(self, x_max, y_max, nx, ny):
        """A class for solving partial differential equations in two
        dimensions with spectral methods. Space is the periodic box [-x_max,
        x_max) x [-y_max, y_max) sampled at nx x ny points. Arrays are indexed
        [i, j] with i along x and j along y; flattened arrays use C order so
        that point (i, j) is at index i*ny + j."""
        if not x_max > 0 or not y_max > 0:
            raise ConfigurationError("Spatial extent must be positive, got x_max=%r, y_max=%r" % (x_max, y_max))
        if int(nx) != nx or int(ny) != ny or nx < 2 or ny < 2:
            raise ConfigurationError("Need at least two points in each direction, got nx=%r, ny=%r" % (nx, ny))
        self.x_max = x_max
        self.y_max = y_max
        self.nx = int(nx)
        self.ny = int(ny)

        self.shape = (self.nx, self.ny)

        self.dx = 2 * self.x_max / self.nx
        self.dy = 2 * self.y_max / self.ny

        self.x = (-self.x_max + self.dx * np.arange(self.nx)).reshape((self.nx, 1))
        self.y = (-self.y_max + self.dy * np.arange(self.ny)).reshape((1, self.ny))

        # Reciprocal space. The spacing is 2 pi / (2 x_max):
        self.kx = 2 * np.pi * np.fft.fftfreq(self.nx, d=self.dx).reshape((self.nx, 1))
        self.ky = 2 * np.pi * np.fft.fftfreq(self.ny, d=self.dy).reshape((1, self.ny))
        self.dkx = 2 * np.pi / (self.nx * self.dx)
        self.dky = 2 * np.pi / (self.ny * self.dy)

        # Position, momentum and angular momentum operators, with hbar = 1.
        # Callers multiply by hbar for other unit systems:
        self.X = OperatorSum({Domains.POSITION: self.x})
        self.Y = OperatorSum({Domains.POSITION: self.y})
        self.PX = OperatorSum({Domains.MOMENTUM_X: self.kx})
        self.PY = OperatorSum({Domains.MOMENTUM_Y: self.ky})
        # x commutes with a transform along y and vice versa, so each term of
        # x Py - y Px is diagonal in a single mixed domain:
        self.LZ = OperatorSum({Domains.MOMENTUM_Y: self.x * self.ky,
                               Domains.MOMENTUM_X: -self.y * self.kx})

    @property
    def centre(self):
        """The mean of the sample coordinates. For an even number of points
        this lies between grid points."""
        return self.x.mean(), self.y.mean()

    def vdot(self, psi1, psi2):
        """Dots two arrays (with complex conjugation of the first)"""
        return np.vdot(psi1, psi2)

    def flatten(self, psi):
        return psi.reshape(-1)

    def unflatten(self, psi_flat):
        return np.asarray(psi_flat).reshape(self.shape)


class HDFOutput:
    def __init__(self, simulator, output_dir):
        self.simulator = simulator
        self.output_dir = output_dir
        if not os.path.isdir(self.output_dir):
            os.makedirs(self.output_dir)
        self.filepath = os.path.join(self.output_dir, 'output.h5')
        self.file = h5py.File(self.filepath, 'w')

        self.file.attrs['x_max'] = simulator.x_max
        self.file.attrs['y_max'] = simulator.y_max
        self.file.attrs['nx'] = simulator.nx
        self.file.attrs['ny'] = simulator.ny
        self.file.attrs['shape'] = simulator.shape

    def save(self, psi, output_log_data, flush=True):
        if not 'psi' in self.file:
            self.file.create_dataset('psi', (0,) + self.simulator.shape,
                                     maxshape=(None,) + self.simulator.shape,
                                     dtype=psi.dtype)
        if not 'output_log' in self.file:
            self.file.create_dataset('output_log', (0,), maxshape=(None,), dtype=output_log_data.dtype)

        output_log_dataset = self.file['output_log']
        output_log_dataset.resize((len(output_log_dataset) + 1,))
        output_log_dataset[-1] = output_log_data
        psi_dataset = self.file['psi']
        psi_dataset.resize((len(psi_dataset) + 1,) + psi_dataset.shape[1:])
        psi_dataset[-1] = psi
        if flush:
            self.file.flush()

    def close(self):
        self.file.close()

    @staticmethod
    def iterframes(directory, start=0, end=None, step=1, frames=None):
        """Yield (frame_number, psi) for saved frames. frames may be a list of
        frame numbers, negative numbers counting from the end"""
        with h5py.File(os.path.join(directory, 'output.h5'), 'r') as f:
            psi_dataset = f['psi']
            n_frames = len(psi_dataset)
            if frames is None:
                if end is None:
                    end = n_frames
                frames = range(start, end, step)
            for i in frames:
                if i < 0:
                    i += n_frames
                yield i, psi_dataset[i]

    @staticmethod
    def output_log(directory):
        with h5py.File(os.path.join(directory, 'output.h5'), 'r') as f:
            return f['output_log'][:]


def _post_step_checks(i, t, checkpoint, psi, post_step_callback):
    if np.isnan(psi).any() or np.isinf(psi).any():
        raise DivergenceError(checkpoint, t)
    if post_step_callback is not None:
        post_step_callback(i, t, psi)


def _check_times(dt, checkpoints):
    checkpoints = np.asarray(checkpoints, dtype=float)
    if not dt > 0:
        raise ConfigurationError("dt must be positive, got %r" % (dt,))
    if checkpoints.ndim != 1 or not len(checkpoints):
        raise ConfigurationError("Need a one dimensional, non-empty sequence of checkpoint times")
    if not np.isfinite(checkpoints).all() or (checkpoints < 0).any():
        raise ConfigurationError("Checkpoint times must be finite and non-negative")
    if (np.diff(checkpoints) <= 0).any():
        raise ConfigurationError("Checkpoint times must be strictly increasing")
    return checkpoints


def split_step(dt, checkpoints, H, psi, hbar=1, imaginary_time=True, normalise=None,
               output_callback=None, post_step_callback=None):
    """Split-step Fourier propagation from t = 0 through each of the
    checkpoint times. H(t, psi) must return an OperatorSum for the
    Hamiltonian, and may modify psi in place (for example to renormalise
    it). Each interval between checkpoints is divided into equal steps no
    longer than dt so that checkpoints are hit exactly. In imaginary time the
    generator is -H/hbar, otherwise it is -iH/hbar. At each checkpoint psi is
    passed to normalise (if not None) and then to output_callback(i, t, psi,
    checkpoint), and a copy is stored. Returns the list of stored states."""
    checkpoints = _check_times(dt, checkpoints)
    factor = -1/hbar if imaginary_time else -1j/hbar
    psi = np.array(psi, dtype=complex)
    states = []
    t = 0.0
    i = 0
    for checkpoint, t_checkpoint in enumerate(checkpoints):
        n_steps = int(np.ceil((t_checkpoint - t) / dt - 1e-9))
        if n_steps > 0:
            step = (t_checkpoint - t) / n_steps
            for _ in range(n_steps):
                H_t = H(t, psi)
                psi[:] = H_t.split_step(psi, factor*step)
                t += step
                i += 1
                _post_step_checks(i, t, checkpoint, psi, post_step_callback)
        t = t_checkpoint
        if normalise is not None:
            normalise(psi)
            _post_step_checks(i, t, checkpoint, psi, None)
        states.append(psi.copy())
        if output_callback is not None:
            output_callback(i, t, psi, checkpoint)
    return states
