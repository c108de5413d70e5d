"""
money.py

Parsing and formatting of the money strings typed into the form or returned by
the extraction model. Vietnamese convention: '.' groups thousands, ',' marks the
decimal part. Anything unparseable counts as zero so totals never fail.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Optional, Union

ZERO = Decimal(0)
NOT_PROVIDED = "..."

_LEADING_NUMBER_RE = re.compile(r"\s*([-+]?)(\d[\d.,]*)")
_NON_DIGIT_RE = re.compile(r"\D")
_THOUSANDS_RE = re.compile(r"\B(?=(\d{3})+(?!\d))")


def _to_decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        return ZERO


def parse_amount(text: Optional[str]) -> Decimal:
    """
    Parse a debt amount such as '1.500', '2,25' or '1.234,5' into a Decimal.

    Rules for the numeric token at the start of the string:
      - both '.' and ',' present: the last one is the decimal separator, the
        other groups thousands
      - a single separator appearing once is the decimal separator
      - a separator repeated several times only groups thousands
    Text without a leading number parses to zero.
    """
    if text is None:
        return ZERO
    m = _LEADING_NUMBER_RE.match(str(text))
    if not m:
        return ZERO
    sign, token = m.group(1), m.group(2).rstrip(".,")

    has_dot, has_comma = "." in token, "," in token
    if has_dot and has_comma:
        if token.rfind(",") > token.rfind("."):
            grouping, fraction = ".", ","
        else:
            grouping, fraction = ",", "."
        if token.count(fraction) > 1:
            return ZERO
        normalized = token.replace(grouping, "").replace(fraction, ".")
    elif has_dot or has_comma:
        sep = "." if has_dot else ","
        if token.count(sep) == 1:
            normalized = token.replace(sep, ".")
        else:
            normalized = token.replace(sep, "")
    else:
        normalized = token

    return _to_decimal(sign + normalized)


def parse_money(text: Optional[str]) -> Decimal:
    """Parse a VND revenue figure ('1.234.567' or '1,234,567'); separators are dropped."""
    if not text:
        return ZERO
    raw = str(text).replace(".", "").replace(",", "")
    m = _LEADING_NUMBER_RE.match(raw)
    if not m:
        return ZERO
    return _to_decimal(m.group(1) + m.group(2))


def format_money_input(value: Union[str, int, Decimal, None]) -> str:
    """Keep digits only and group them with dots: '10000000' -> '10.000.000'."""
    if value is None:
        return ""
    if isinstance(value, Decimal):
        value = format(value.to_integral_value(), "f")
    raw = _NON_DIGIT_RE.sub("", str(value))
    if not raw:
        return ""
    return _THOUSANDS_RE.sub(".", raw)


def format_vi_number(value: Union[Decimal, int, float, str], max_fraction_digits: int = 3) -> str:
    """
    Render a number the way vi-VN locale does: 1234.75 -> '1.234,75'.
    At most max_fraction_digits decimals are kept and trailing zeros dropped.
    """
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    quantum = Decimal(1).scaleb(-max_fraction_digits)
    with localcontext() as ctx:
        # Room for every integer digit plus the kept fraction digits
        ctx.prec = max(ctx.prec, number.adjusted() + max_fraction_digits + 2)
        rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
    whole, _, frac = f"{rounded:,f}".partition(".")
    whole = whole.replace(",", ".")
    frac = frac.rstrip("0")
    return f"{whole},{frac}" if frac else whole


def format_currency(text: Optional[str]) -> str:
    if not text:
        return f"{NOT_PROVIDED} VNĐ"
    return f"{text} VNĐ"


def format_total(value: Decimal, unit: str = "") -> str:
    """Aggregate display: zero means nothing was entered yet."""
    if value == 0:
        return NOT_PROVIDED
    rendered = format_vi_number(value)
    return f"{rendered} {unit}" if unit else rendered
