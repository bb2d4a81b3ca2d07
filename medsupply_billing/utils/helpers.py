# utils/helpers.py
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, localcontext
import logging
import re
from typing import Union, Optional

from ..constants import CURRENCY_CODE, MONEY_PLACES

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """Current UTC timestamp as ISO-8601 string (used for updated_at)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def round_money(v: NumberLike, places: int = MONEY_PLACES) -> float:
    """
    Round half-up to `places` decimals and return a float.

    Goes through str() so binary float noise (e.g. 2.675 -> 2.67499...) does not
    pull the result down. Never raises for numeric input: precision grows
    with the magnitude, and inf/nan come back unchanged.
    """
    d = Decimal(str(v))
    if not d.is_finite():
        return float(d)
    q = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = max(28, d.adjusted() + places + 2)
        return float(d.quantize(q, rounding=ROUND_HALF_UP))


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"


def format_currency(amount: NumberLike, currency: str = CURRENCY_CODE) -> str:
    """'KES 1,234.50' style label. Presentation only."""
    return f"{currency} {fmt_money(amount, strict=True)}"


def parse_currency(text: Optional[str]) -> float:
    """
    Strip currency symbols/separators and parse the leading number of what
    is left ("1.2.3" -> 1.2, "12-34" -> 12). Returns 0.0 when nothing numeric
    survives.
    """
    cleaned = _NON_NUMERIC.sub("", text or "")
    m = _LEADING_NUMBER.match(cleaned)
    return float(m.group(0)) if m else 0.0
