"""Population statistics for the behavioural amount check.

Both helpers fail open: with fewer than two samples, or no spread in
the samples, the z-score is 0 and never triggers.
"""

from collections.abc import Sequence
from decimal import Decimal

MIN_SAMPLES = 2

Number = Decimal | float | int


def window_stats(window: Sequence[Number]) -> tuple[float, float]:
    """Return (mean, population standard deviation) of the window."""
    if not window:
        return 0.0, 0.0
    values = [float(v) for v in window]
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, variance**0.5


def z_score(
    window: Sequence[Number],
    candidate: Number,
    relative_std_floor: float = 0.0,
) -> float:
    """Return |candidate - mean| / std_dev over the window.

    Args:
        window: Past amounts, oldest first.
        candidate: The amount being scored.
        relative_std_floor: Standard deviation to use, as a fraction of
            |mean|, when the window has no spread at all. With the default
            of 0 a flat window scores 0. Any real spread is used as is.

    Returns:
        The absolute z-score, or 0.0 when the window is too small or
        the effective standard deviation is zero.
    """
    if len(window) < MIN_SAMPLES:
        return 0.0
    mean, std_dev = window_stats(window)
    if std_dev == 0:
        std_dev = relative_std_floor * abs(mean)
    if std_dev == 0:
        return 0.0
    return abs((float(candidate) - mean) / std_dev)
