import math
import sys
from typing import IO, Optional


class ProgressBar:
    """
    Textual progress bar for one pass over the tree sample.

    Prints a percentage scale and then one star per 1/60 of ``total_trees``.
    The total may be a guess; stars stop at the end of the scale and
    ``complete`` fills in whatever is missing.
    """

    progscale = "0              25             50             75            100"
    progticks = "|--------------|--------------|--------------|--------------|"
    ndots = 60

    def __init__(
        self, total_trees: int, output: Optional[IO[str]] = None, quiet: bool = False
    ):
        self.output = output if output is not None else sys.stderr
        self.quiet = quiet
        self.total_trees = max(1, total_trees)
        self.trees_per_dot = self.total_trees / self.ndots
        self.processed_trees = 0
        self.n_dotsprinted = 0

        if not self.quiet:
            self.output.write(self.progscale + "\n")
            self.output.write(self.progticks + "\n")
            self.output.flush()

    def update(self) -> None:
        """Count one processed tree and print any stars now due."""
        self.processed_trees += 1
        if self.quiet:
            return
        n_dots_expected = min(
            self.ndots, math.floor(self.processed_trees / self.trees_per_dot)
        )
        if self.n_dotsprinted < n_dots_expected:
            self.output.write("*" * (n_dots_expected - self.n_dotsprinted))
            self.output.flush()
            self.n_dotsprinted = n_dots_expected

    def complete(self) -> None:
        """Ensure all stars are printed at the end and finish the line."""
        if self.quiet:
            return
        if self.n_dotsprinted < self.ndots:
            self.output.write("*" * (self.ndots - self.n_dotsprinted))
            self.n_dotsprinted = self.ndots
        self.output.write("\n")
        self.output.flush()
