import math


def round_half_up(value: float, digits: int = 0):
    """Display rounding: halves go up (2.5 -> 3), unlike Python's round()."""
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def money(value) -> float:
    """Currency to 2 decimals with the same half-up rule; NULL or NaN -> 0.0."""
    value = float(value or 0.0)
    if math.isnan(value):
        return 0.0
    return round_half_up(value, 2)
