"""Compact JSON serialization.

Used wherever a JSON value has to become a single string: nested values
coerced into record fields, and raw records quoted in diagnostics.
"""

import json
import math
import re
from decimal import Decimal
from typing import Any, Tuple

# Numbers inside nested values use fixed-point notation within this range
FIXED_POINT_MIN = 1e-6
FIXED_POINT_MAX = 1e21

_LONE_SURROGATE = re.compile("[\ud800-\udfff]")


def replace_surrogates(text: str) -> str:
    """Replace unpaired UTF-16 surrogates with U+FFFD.

    ``json.loads`` combines escaped surrogate pairs into one character, so
    any surrogate left in a decoded string is unpaired and cannot be encoded
    as UTF-8.
    """
    return _LONE_SURROGATE.sub("\ufffd", text)


def shortest_digits(value: float) -> Tuple[bool, str, int]:
    """Split a finite, non-zero float into ``(negative, digits, exponent)``.

    ``digits`` is the shortest digit string that round-trips, without
    trailing zeros; ``exponent`` is the decimal exponent of its first digit.
    """
    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    all_digits = "".join(str(d) for d in digit_tuple)
    point = len(all_digits) + exponent
    return bool(sign), all_digits.rstrip("0"), point - 1


def json_number(value: float) -> str:
    """Render a number the way a JSON encoder working on doubles does.

    Fixed-point for magnitudes in ``[1e-6, 1e21)``, exponent form outside
    it (``1e+21``, ``1e-7``). Integers are treated as doubles.
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"unsupported JSON number: {value!r}")
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    if FIXED_POINT_MIN <= abs(value) < FIXED_POINT_MAX:
        return format(Decimal(repr(value)).normalize(), "f")

    negative, digits, exponent = shortest_digits(value)
    mantissa = digits[0]
    if len(digits) > 1:
        mantissa += "." + digits[1:]
    exp_sign = "-" if exponent < 0 else "+"
    return f"{'-' if negative else ''}{mantissa}e{exp_sign}{abs(exponent)}"


def _encode(obj: Any) -> str:
    if obj is None:
        return "null"
    if isinstance(obj, str):
        return json.dumps(replace_surrogates(obj), ensure_ascii=False)
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, (int, float)):
        return json_number(obj)
    if isinstance(obj, dict):
        members = sorted(
            ((replace_surrogates(str(k)), v) for k, v in obj.items()),
            key=lambda member: member[0],
        )
        return "{" + ",".join(f"{_encode(k)}:{_encode(v)}" for k, v in members) + "}"
    if isinstance(obj, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in obj) + "]"
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def compact_dumps(obj: Any) -> str:
    """
    Compact JSON serialization with a stable key order.

    Rules:
    - Sorted keys
    - Compact separators (",", ":")
    - Non-ASCII characters kept as-is, unpaired surrogates replaced
    - Numbers as doubles (see ``json_number``)
    - Lists keep their order

    Args:
        obj: JSON-compatible Python object

    Returns:
        Compact JSON string
    """
    return _encode(obj)
