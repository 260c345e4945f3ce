"""
Summary statistics of attribute samples.

All results are plain Python floats so they print the same way whatever numpy
version produced them.
"""

import math
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

NUMERIC = "numeric"
BOOLEAN = "boolean"
DISCRETE = "discrete"
ARRAY = "array"


def classify_values(values: Sequence[Any]) -> str:
    """
    Return the kind of an attribute sample.

    ``boolean`` if every value is a bool, ``numeric`` if every value is an int or
    float, ``array`` if every value is a list of numbers of one common length,
    ``discrete`` otherwise.
    """
    if all(isinstance(v, bool) for v in values):
        return BOOLEAN
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return NUMERIC
    if all(
        isinstance(v, (list, tuple))
        and v
        and all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in v)
        for v in values
    ) and len({len(v) for v in values}) == 1:
        return ARRAY
    return DISCRETE


def mean(values: Sequence[float]) -> float:
    return float(np.mean(np.asarray(values, dtype=float)))


def median(values: Sequence[float]) -> float:
    return float(np.median(np.asarray(values, dtype=float)))


def value_range(values: Sequence[float]) -> List[float]:
    data = np.asarray(values, dtype=float)
    return [float(data.min()), float(data.max())]


def varies(values: Sequence[float]) -> bool:
    """True when the sample holds at least two distinct values."""
    data = np.asarray(values, dtype=float)
    return bool(data.min() < data.max())


def hpd_interval(values: Sequence[float], mass: float = 0.95) -> List[float]:
    """
    Highest posterior density interval of a sample.

    The interval is the narrowest window holding ``ceil(mass * n)`` consecutive
    sorted values; on equal widths the lowest window wins. Both bounds are
    sample values.

    Args:
        values: Non-empty sample
        mass: Probability mass in (0, 1]

    Returns:
        ``[lower, upper]``
    """
    data = np.sort(np.asarray(values, dtype=float))
    n = len(data)
    if n == 0:
        raise ValueError("HPD interval of an empty sample")
    window = min(n, max(1, math.ceil(mass * n)))
    widths = data[window - 1 :] - data[: n - window + 1]
    start = int(np.argmin(widths))
    return [float(data[start]), float(data[start + window - 1])]


def frequency_table(values: Sequence[Any]) -> Dict[Any, int]:
    """Counts of each distinct value, in first-seen order."""
    counts: Dict[Any, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


def mode(values: Sequence[Any]) -> Tuple[str, float, List[str], List[float]]:
    """
    Most frequent value of a discrete sample.

    Ties are joined with ``+`` in first-seen order and the reported probability
    is the shared frequency times the number of tied values.

    Returns:
        Tuple of (mode label, mode probability, value set, value set probabilities)
    """
    counts = frequency_table([str(v) for v in values])
    total = sum(counts.values())
    max_count = max(counts.values())
    tied = [value for value, count in counts.items() if count == max_count]
    label = "+".join(tied)
    probability = max_count / total * len(tied)
    value_set = list(counts)
    set_probabilities = [count / total for count in counts.values()]
    return label, probability, value_set, set_probabilities
