from __future__ import annotations

import math

ZERO_CELSIUS_IN_KELVIN = 273.15


def _round_half_up(value: float) -> int:
    # Unlike round(), halves always go toward positive infinity: 2.5 -> 3, -2.5 -> -2.
    return math.floor(value + 0.5)


def kelvin_to_fahrenheit(kelvin: float) -> int:
    """Convert Kelvin to whole degrees Fahrenheit.

    Halves round toward positive infinity, so -0.5 becomes 0 and 0.5 becomes 1.
    """
    fahrenheit = (kelvin - ZERO_CELSIUS_IN_KELVIN) * 9 / 5 + 32
    return _round_half_up(fahrenheit)
