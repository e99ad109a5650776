"""Duration parser for token lifetimes.

Lifetimes are configured as ``<integer><unit>`` where unit is one of
``s``, ``m``, ``h``, ``d`` or ``w`` (e.g. ``15m``, ``7d``).
"""

import re
from datetime import timedelta

_DURATION_PATTERN = re.compile(r"^(\d+)([smhdw])$", re.IGNORECASE)

_UNIT_KWARGS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(expression: str) -> timedelta:
    """Parse a duration expression into a timedelta.

    Args:
        expression: Duration such as ``"15m"`` or ``"7d"``.

    Returns:
        The equivalent timedelta.

    Raises:
        ValueError: If the expression is not ``<integer><unit>``.

    Examples:
        >>> parse_duration("7d")
        datetime.timedelta(days=7)
        >>> parse_duration("90s")
        datetime.timedelta(seconds=90)
    """
    match = _DURATION_PATTERN.match(expression.strip())
    if not match:
        raise ValueError(f"Invalid duration: {expression}")

    value = int(match.group(1))
    unit = match.group(2).lower()
    return timedelta(**{_UNIT_KWARGS[unit]: value})
