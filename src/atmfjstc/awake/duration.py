"""
Utilities for working with human-readable time spans such as ``1h30m``, ``90s`` or ``1.5h``.

Format
------

A time span is a sequence of one or more ``<number><unit>`` groups, optionally preceded by a sign, where:

- ``<number>`` is a decimal number, possibly with a fractional part (``1``, ``1.5``, ``.5``)
- ``<unit>`` is one of ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m``, ``h``

The groups are simply added together, so ``1h30m`` is the same as ``90m`` or ``1.5h``. The special value ``0`` (with no
unit) is also accepted.

Spans are represented as `datetime.timedelta` objects, so any part finer than a microsecond is truncated. Negative spans
are not accepted, as they make no sense for the purposes of this program.
"""

import re

from datetime import timedelta
from decimal import Decimal, InvalidOperation


class DurationParseError(ValueError):
    def __init__(self, text: str, reason: str = "invalid duration"):
        self.text = text
        self.reason = reason

        super().__init__(f"{reason} {text!r}")


def parse_duration(text: str) -> timedelta:
    """
    Parses a human-readable time span.

    Args:
        text: The text to parse, e.g. ``'1h30m'``

    Returns:
        The corresponding `timedelta` (never negative)

    Raises:
        DurationParseError: If the text is not a valid time span, or it specifies a negative time span
    """
    match = _DURATION_REGEX.fullmatch(text)
    if match is None:
        raise DurationParseError(text)

    sign, body = match.group('sign'), match.group('body')

    if body == '0':
        return timedelta(0)

    nanos = Decimal(0)
    for group in _GROUP_REGEX.finditer(body):
        try:
            nanos += Decimal(group.group('number')) * _NANOS_PER_UNIT[group.group('unit')]
        except InvalidOperation as e:
            raise DurationParseError(text) from e

    if (sign == '-') and (nanos > 0):
        raise DurationParseError(text, "negative duration")

    try:
        return timedelta(microseconds=int(nanos) // 1000)
    except OverflowError as e:
        raise DurationParseError(text, "duration out of range") from e


def format_duration(span: timedelta) -> str:
    """
    Renders a time span in the same format accepted by `parse_duration`.

    The result always uses the largest units that make sense, e.g. ``2h0m0s``, ``1m30s``, ``1.5s``, ``300ms``. A zero
    time span is rendered as ``0s``.
    """
    micros = span // timedelta(microseconds=1)

    if micros == 0:
        return '0s'

    sign = '-' if micros < 0 else ''
    micros = abs(micros)

    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1000000:
        return f"{sign}{_format_fraction(micros, 3)}ms"

    hours, micros = divmod(micros, 3600 * 1000000)
    minutes, micros = divmod(micros, 60 * 1000000)

    parts = [sign]
    if hours > 0:
        parts.append(f"{hours}h")
    if (hours > 0) or (minutes > 0):
        parts.append(f"{minutes}m")
    parts.append(f"{_format_fraction(micros, 6)}s")

    return ''.join(parts)


def whole_seconds(span: timedelta) -> int:
    """
    Gets the number of whole seconds in a time span (any fraction of a second is dropped).
    """
    return span // timedelta(seconds=1)


def _format_fraction(value: int, decimals: int) -> str:
    int_part, frac_part = divmod(value, 10 ** decimals)

    if frac_part == 0:
        return str(int_part)

    return f"{int_part}.{frac_part:0{decimals}}".rstrip('0')


_UNIT_PATTERN = r'ns|us|µs|μs|ms|s|m|h'  # Note: order matters, e.g. 'ms' must be tried before 'm'
_NUMBER_PATTERN = r'\d+\.?\d*|\.\d+'

_DURATION_REGEX = re.compile(
    rf'(?P<sign>[-+]?)(?P<body>0|(?:(?:{_NUMBER_PATTERN})(?:{_UNIT_PATTERN}))+)', re.ASCII
)
_GROUP_REGEX = re.compile(rf'(?P<number>{_NUMBER_PATTERN})(?P<unit>{_UNIT_PATTERN})', re.ASCII)

_NANOS_PER_UNIT = {
    'ns': Decimal(1),
    'us': Decimal(1000),
    'µs': Decimal(1000),  # U+00B5 micro sign
    'μs': Decimal(1000),  # U+03BC greek mu
    'ms': Decimal(1000000),
    's': Decimal(1000000000),
    'm': Decimal(60 * 1000000000),
    'h': Decimal(3600 * 1000000000),
}
