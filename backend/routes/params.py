"""Lenient query/path parsing: anything that is not a number becomes the fallback."""

import math


def to_int(value: str | None, fallback: int) -> int:
    try:
        number = float(value) if value is not None else math.nan
    except ValueError:
        return fallback
    return math.trunc(number) if math.isfinite(number) else fallback
