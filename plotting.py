import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.colors
import matplotlib.image
import matplotlib.pyplot as plt
pi = np.pi


def plot(filename, psi):
    """Save psi as an image with density as brightness and phase as hue"""
    psi = psi.transpose()
    rho = np.abs(psi)**2
    phase = np.angle(psi)
    hsl = np.zeros(psi.shape + (3,))
    hsl[:, :, 2] = rho/rho.max()
    hsl[:, :, 0] = np.array((phase + pi)/(2*pi))
    hsl[:, :, 1] = 0.33333
    rgb = matplotlib.colors.hsv_to_rgb(hsl)
    matplotlib.image.imsave(filename, rgb, origin='lower')


def plot_density_and_phase(filename, x, y, psi, title=None):
    """Save heat maps of the density |psi|^2 and phase arg(psi) side by side,
    with colour bars. x and y are the grid coordinates of the axes of psi."""
    x = np.asarray(x).ravel()
    y = np.asarray(y).ravel()
    dx = x[1] - x[0]
    dy = y[1] - y[0]
    extent = [x[0] - dx/2, x[-1] + dx/2, y[0] - dy/2, y[-1] + dy/2]

    fig, (ax_density, ax_phase) = plt.subplots(1, 2, figsize=(10, 4.5))
    image = ax_density.imshow((np.abs(psi)**2).transpose(), origin='lower', extent=extent,
                              interpolation='nearest', cmap='viridis')
    fig.colorbar(image, ax=ax_density)
    ax_density.set_title('density')
    ax_density.set_xlabel('x')
    ax_density.set_ylabel('y')

    image = ax_phase.imshow(np.angle(psi).transpose(), origin='lower', extent=extent,
                            interpolation='nearest', cmap='twilight', vmin=-pi, vmax=pi)
    fig.colorbar(image, ax=ax_phase)
    ax_phase.set_title('phase')
    ax_phase.set_xlabel('x')
    ax_phase.set_ylabel('y')

    if title is not None:
        fig.suptitle(title)
    fig.savefig(filename)
    plt.close(fig)
