"""Coercion of decoded JSON values into record field strings.

Rules:
- str is kept verbatim, except that unpaired surrogates become U+FFFD
- None becomes ""
- bool becomes "true" / "false"
- int and float are rendered as floats in shortest general format
- list and dict become their compact JSON text
"""

import math
from typing import Any, Dict

from xrun._internal.canonical_json import compact_dumps, replace_surrogates, shortest_digits

# General format switches to exponent form once the decimal exponent reaches this.
EXPONENT_THRESHOLD = 6


def format_number(value: float) -> str:
    """Render a number with the fewest digits that round-trip, in general format.

    Plain decimal notation is used when the decimal exponent lies in
    ``[-4, 6)``; otherwise exponent notation with a signed, at least
    two-digit exponent (``1e+06``, ``2.5e-05``).

    Integers go through the float path as well, so ``1000000`` renders
    ``1e+06`` and integers beyond 2**53 lose precision.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    negative, digits, decimal_exponent = shortest_digits(value)
    prefix = "-" if negative else ""
    # Position of the decimal point relative to the start of the digit string
    point = decimal_exponent + 1

    if decimal_exponent < -4 or decimal_exponent >= EXPONENT_THRESHOLD:
        mantissa = digits[0]
        if len(digits) > 1:
            mantissa += "." + digits[1:]
        exp_sign = "-" if decimal_exponent < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(decimal_exponent):02d}"

    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return f"{prefix}{digits}{'0' * (point - len(digits))}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def coerce_value(value: Any) -> str:
    """Coerce a single decoded JSON value to its field string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return replace_surrogates(value)
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return compact_dumps(value)


def coerce_object(obj: Dict[str, Any]) -> Dict[str, str]:
    """Coerce every value of a decoded JSON object, producing a Record."""
    return {replace_surrogates(str(key)): coerce_value(value) for key, value in obj.items()}
