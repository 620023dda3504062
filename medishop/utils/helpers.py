# utils/helpers.py
from datetime import date, datetime, timedelta
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_time_str() -> str:
    """Return the current local time as HH:MM:SS."""
    return datetime.now().strftime("%H:%M:%S")


def now_iso() -> str:
    """Return the current local timestamp (seconds precision) as ISO string."""
    return datetime.now().isoformat(timespec="seconds")


def compact_stamp(moment: Optional[datetime] = None) -> str:
    """yyyymmddHHMMSS, used for human-readable ledger references."""
    return (moment or datetime.now()).strftime("%Y%m%d%H%M%S")


def parse_iso_date(value: str) -> date:
    """
    Parse 'YYYY-MM-DD' (a trailing time part is ignored).
    Raises ValueError with a clear message on failure.
    """
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValueError(f"Could not parse {value!r} as an ISO date (YYYY-MM-DD).") from e


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=int(days))


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
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
