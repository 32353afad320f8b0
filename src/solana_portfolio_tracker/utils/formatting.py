"""Display formatting for amounts, prices, addresses and timestamps."""

import time
from decimal import Decimal, InvalidOperation

_SHORT_FORM_UNITS = (
    (Decimal("1e12"), "T"),
    (Decimal("1e9"), "B"),
    (Decimal("1e6"), "M"),
    (Decimal("1e3"), "K"),
)


def _to_decimal(value: Decimal | float | int | None) -> Decimal | None:
    if value is None:
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return None
    return result if result.is_finite() else None


def format_large_number(
    value: Decimal | float | int,
    decimals: int = 2,
    force_decimals: bool = False,
    short_form: bool = True,
) -> str:
    """
    Format a number with K/M/B/T suffixes.

    Parameters
    ----------
    value : Decimal | float | int
        Number to format
    decimals : int
        Digits after the decimal point
    force_decimals : bool
        Show decimals even for whole numbers
    short_form : bool
        Use suffixes for values of a thousand and above

    Returns
    -------
    str
        Formatted number (``"0"`` for zero and non-finite input)

    Examples
    --------
    >>> format_large_number(1_234_567)
    '1.23M'
    >>> format_large_number(950)
    '950'

    """
    number = _to_decimal(value)
    if number is None or number == 0:
        return "0"

    sign = "-" if number < 0 else ""
    absolute = abs(number)

    if short_form:
        for threshold, suffix in _SHORT_FORM_UNITS:
            if absolute >= threshold:
                return f"{sign}{absolute / threshold:.{decimals}f}{suffix}"

    if force_decimals or absolute % 1 != 0:
        return f"{sign}{absolute:.{decimals}f}"

    return f"{sign}{int(absolute):,}"


def format_currency(
    amount: Decimal | float | int | None,
    min_fraction_digits: int = 2,
    max_fraction_digits: int = 6,
    short_form: bool = False,
) -> str:
    """
    Format a USD amount.

    Amounts below one cent keep six decimals so dust stays visible. Large
    amounts can be abbreviated with ``short_form``.

    Parameters
    ----------
    amount : Decimal | float | int | None
        Amount in USD
    min_fraction_digits : int
        Minimum digits after the decimal point
    max_fraction_digits : int
        Maximum digits after the decimal point
    short_form : bool
        Abbreviate amounts of a thousand and above (``$1.2K``)

    Returns
    -------
    str
        Formatted amount (``"$0.00"`` for missing or non-finite input)

    Examples
    --------
    >>> format_currency(1234.5)
    '$1,234.50'
    >>> format_currency(0.000123)
    '$0.000123'

    """
    number = _to_decimal(amount)
    if number is None:
        return "$0.00"

    sign = "-" if number < 0 else ""
    absolute = abs(number)

    if 0 < absolute < Decimal("0.01"):
        return f"{sign}${absolute:.6f}"

    if short_form and absolute >= 1000:
        return f"{sign}${format_large_number(absolute, decimals=1)}"

    formatted = f"{absolute:,.{max_fraction_digits}f}"
    if max_fraction_digits > min_fraction_digits and "." in formatted:
        whole, fraction = formatted.split(".")
        fraction = fraction.rstrip("0").ljust(min_fraction_digits, "0")
        formatted = f"{whole}.{fraction}" if fraction else whole

    return f"{sign}${formatted}"


def shorten_address(address: str) -> str:
    """
    Abbreviate an address to its first and last four characters.

    Examples
    --------
    >>> shorten_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU")
    '7xKX...gAsU'

    """
    if not address or len(address) < 8:
        return address
    return f"{address[:4]}...{address[-4:]}"


def format_time_ago(timestamp: int, now: float | None = None) -> str:
    """
    Relative age of a unix timestamp (seconds) in minutes, hours or days.

    Parameters
    ----------
    timestamp : int
        Unix time in seconds
    now : float | None
        Current unix time (defaults to the wall clock)

    Returns
    -------
    str
        ``"5m ago"``, ``"3h ago"`` or ``"2d ago"``

    """
    now = time.time() if now is None else now
    elapsed = max(0, int(now - timestamp))

    minutes = elapsed // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = elapsed // 3600
    if hours < 24:
        return f"{hours}h ago"
    return f"{elapsed // 86400}d ago"
