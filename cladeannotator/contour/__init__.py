from cladeannotator.contour.base import ContourMaker, ContourPath
from cladeannotator.contour.kde import KernelDensityEstimator2D, bandwidth_nrd
from cladeannotator.contour.r_contour import RContourMaker


def make_contour_maker(backend: str = "native", grid_size: int = 50) -> ContourMaker:
    """Return the contouring engine named by ``backend`` (``native`` or ``r``)."""
    if backend == "r":
        return RContourMaker(grid_size=grid_size)
    if backend == "native":
        return KernelDensityEstimator2D(grid_size=grid_size)
    raise ValueError(f"Unknown contour backend '{backend}'")


__all__ = [
    "ContourMaker",
    "ContourPath",
    "KernelDensityEstimator2D",
    "RContourMaker",
    "bandwidth_nrd",
    "make_contour_maker",
]
