"""
Native 2D HPD contours from a Gaussian kernel density estimate.

The estimate follows MASS ``kde2d``: a product of normal kernels evaluated on a
regular grid spanning the data, with per-axis bandwidths from
``bandwidth.nrd``. The HPD region is the set of grid cells whose density lies
above the level enclosing the requested mass, traced with contourpy.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from contourpy import contour_generator
from scipy import stats

from cladeannotator.contour.base import ContourPath

logger = logging.getLogger(__name__)


def bandwidth_nrd(values: Sequence[float]) -> float:
    """
    Normal reference bandwidth, ``4 * 1.06 * min(sd, IQR / 1.34) * n^(-1/5)``.

    Falls back to the standard deviation when the IQR is zero, and to 1 when
    both are zero.
    """
    data = np.asarray(values, dtype=float)
    n = len(data)
    sd = float(np.std(data, ddof=1)) if n > 1 else 0.0
    iqr_scale = float(stats.iqr(data)) / 1.34
    spread = min(sd, iqr_scale)
    if spread <= 0.0:
        spread = sd if sd > 0.0 else 1.0
    return 4.0 * 1.06 * spread * n ** (-0.2)


class KernelDensityEstimator2D:
    """
    Bivariate kernel density estimate with HPD contour extraction.

    Args:
        grid_size: Number of grid points per axis
        bandwidth: Optional fixed ``(hx, hy)``; estimated from the data when omitted
    """

    def __init__(
        self, grid_size: int = 50, bandwidth: Optional[Tuple[float, float]] = None
    ):
        self.grid_size = grid_size
        self.bandwidth = bandwidth

    def estimate(
        self, x: Sequence[float], y: Sequence[float]
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Evaluate the density on the grid.

        Returns:
            ``(gx, gy, z)`` with ``z[i, j]`` the density at ``(gx[i], gy[j])``
        """
        xs = np.asarray(x, dtype=float)
        ys = np.asarray(y, dtype=float)
        if len(xs) != len(ys):
            raise ValueError("x and y samples differ in length")
        n = len(xs)

        if self.bandwidth is not None:
            hx, hy = self.bandwidth
        else:
            hx, hy = bandwidth_nrd(xs), bandwidth_nrd(ys)
        hx /= 4.0
        hy /= 4.0

        gx = np.linspace(xs.min(), xs.max(), self.grid_size)
        gy = np.linspace(ys.min(), ys.max(), self.grid_size)
        kx = stats.norm.pdf((gx[:, None] - xs[None, :]) / hx)
        ky = stats.norm.pdf((gy[:, None] - ys[None, :]) / hy)
        z = kx @ ky.T / (n * hx * hy)
        return gx, gy, z

    @staticmethod
    def level_for_mass(z: np.ndarray, mass: float) -> float:
        """Density level whose super-level set holds ``mass`` of the grid density."""
        sorted_density = np.sort(z.ravel())
        cumulative = np.cumsum(sorted_density)
        cumulative /= cumulative[-1]
        return float(np.interp(1.0 - mass, cumulative, sorted_density))

    def get_contour_paths(
        self, x: Sequence[float], y: Sequence[float], mass: float
    ) -> List[ContourPath]:
        gx, gy, z = self.estimate(x, y)
        level = self.level_for_mass(z, mass)

        # A zero border keeps every ring closed inside the grid
        step_x = gx[1] - gx[0] if gx[-1] > gx[0] else 1.0
        step_y = gy[1] - gy[0] if gy[-1] > gy[0] else 1.0
        px = np.concatenate(([gx[0] - step_x], gx, [gx[-1] + step_x]))
        py = np.concatenate(([gy[0] - step_y], gy, [gy[-1] + step_y]))
        pz = np.zeros((len(px), len(py)))
        pz[1:-1, 1:-1] = z

        generator = contour_generator(x=px, y=py, z=pz.T, line_type="Separate")
        paths: List[ContourPath] = []
        for ring in generator.lines(level):
            if len(ring) < 2:
                continue
            xs = [float(v) for v in ring[:, 0]]
            ys = [float(v) for v in ring[:, 1]]
            if xs[0] != xs[-1] or ys[0] != ys[-1]:
                xs.append(xs[0])
                ys.append(ys[0])
            paths.append(ContourPath(xs, ys))
        logger.debug(f"Traced {len(paths)} contour(s) at density level {level:.6g}")
        return paths
