import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from negative infinity, like JavaScript's Math.round.

    Python's round() uses banker's rounding (round(8.5) == 8), which would
    shift averages and XP by one on exact .5 ties.
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    if ndigits == 0:
        return int(rounded)
    return rounded
