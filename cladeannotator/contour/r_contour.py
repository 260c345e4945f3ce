import logging
import subprocess
from typing import List, Optional, Sequence, Tuple

from cladeannotator.contour.base import ContourPath
from cladeannotator.exceptions import ContourBackendError

logger = logging.getLogger(__name__)

_R_SCRIPT = """\
suppressMessages(library(MASS))
var1 <- {x}
var2 <- {y}
post1 <- kde2d(var1, var2, n = {n}{bandwidth})
dx <- diff(post1$x[1:2])
dy <- diff(post1$y[1:2])
sz <- sort(post1$z)
c1 <- cumsum(sz) * dx * dy
level <- approx(c1, sz, xout = 1 - {mass})$y
lines <- contourLines(post1$x, post1$y, post1$z, levels = level)
for (l in lines) {{
  cat(paste(format(l$x, digits = 15), collapse = ","), "\\n", sep = "")
  cat(paste(format(l$y, digits = 15), collapse = ","), "\\n", sep = "")
}}
"""


def _r_vector(values: Sequence[float]) -> str:
    return "c(" + ",".join(repr(float(v)) for v in values) + ")"


class RContourMaker:
    """
    HPD contours computed by R (MASS ``kde2d`` and ``contourLines``).

    R runs out of process through ``Rscript``; each contour comes back as two
    lines of comma separated x and y coordinates.
    """

    def __init__(
        self,
        grid_size: int = 50,
        bandwidth: Optional[Tuple[float, float]] = None,
        rscript: str = "Rscript",
    ):
        self.grid_size = grid_size
        self.bandwidth = bandwidth
        self.rscript = rscript

    def build_script(self, x: Sequence[float], y: Sequence[float], mass: float) -> str:
        bandwidth = ""
        if self.bandwidth is not None:
            bandwidth = f", h = c({float(self.bandwidth[0])!r}, {float(self.bandwidth[1])!r})"
        return _R_SCRIPT.format(
            x=_r_vector(x),
            y=_r_vector(y),
            n=self.grid_size,
            bandwidth=bandwidth,
            mass=float(mass),
        )

    def get_contour_paths(
        self, x: Sequence[float], y: Sequence[float], mass: float
    ) -> List[ContourPath]:
        script = self.build_script(x, y, mass)
        try:
            result = subprocess.run(
                [self.rscript, "--vanilla", "-"],
                input=script,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise ContourBackendError(
                f"R contouring requested but '{self.rscript}' was not found"
            ) from e
        except subprocess.CalledProcessError as e:
            raise ContourBackendError(
                f"R contouring failed: {(e.stderr or '').strip()}"
            ) from e
        return self.parse_output(result.stdout)

    @staticmethod
    def parse_output(output: str) -> List[ContourPath]:
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if len(lines) % 2:
            raise ContourBackendError("R contouring returned an odd number of lines")
        paths: List[ContourPath] = []
        for i in range(0, len(lines), 2):
            try:
                xs = [float(v) for v in lines[i].split(",")]
                ys = [float(v) for v in lines[i + 1].split(",")]
            except ValueError as e:
                raise ContourBackendError(f"Unreadable R contour output: {e}") from e
            if xs and (xs[0] != xs[-1] or ys[0] != ys[-1]):
                xs.append(xs[0])
                ys.append(ys[0])
            paths.append(ContourPath(xs, ys))
        logger.debug(f"R returned {len(paths)} contour(s)")
        return paths
