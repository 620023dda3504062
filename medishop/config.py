from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, DEFAULT_GST_RATE

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.environ.get("MEDISHOP_DATA_DIR") or (BASE_DIR.parent / DATA_DIR))
DB_PATH = Path(os.environ.get("MEDISHOP_DB_PATH") or (DATA_PATH / DB_FILE_NAME))

# audit log goes to stderr when unset
LOG_DIR = os.environ.get("MEDISHOP_LOG_DIR") or None
LOG_LEVEL = os.environ.get("MEDISHOP_LOG_LEVEL", "INFO").upper()

SEED_DEFAULTS = os.environ.get("MEDISHOP_SEED", "1").strip().lower() not in ("0", "false", "no")


RETURN_TOTAL_SUBTOTAL = "subtotal"
RETURN_TOTAL_NET = "net"
RETURN_TOTAL_MODES = (RETURN_TOTAL_SUBTOTAL, RETURN_TOTAL_NET)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BillingPolicy:
    """
    Business knobs for the billing engine.

    return_total_mode:
      - "subtotal": after a retroactive return, total = subtotal - return_amount
        (bill discount and GST are dropped).
      - "net": total = after_discount + gst - return_amount (same formula as commit).
    reverse_customer_total_on_return:
      - False: customer total_purchases is gross spend (never decreased).
      - True: a retroactive return takes the drop in bill total off the customer.
    """
    return_total_mode: str = RETURN_TOTAL_SUBTOTAL
    reverse_customer_total_on_return: bool = False
    default_gst_pct: float = DEFAULT_GST_RATE

    def __post_init__(self):
        if self.return_total_mode not in RETURN_TOTAL_MODES:
            raise ValueError(
                f"return_total_mode must be one of: {', '.join(RETURN_TOTAL_MODES)}"
            )

    @classmethod
    def from_env(cls) -> "BillingPolicy":
        mode = os.environ.get("MEDISHOP_RETURN_TOTAL_MODE", RETURN_TOTAL_SUBTOTAL).strip().lower()
        gst_raw = os.environ.get("MEDISHOP_DEFAULT_GST")
        try:
            gst = float(gst_raw) if gst_raw else DEFAULT_GST_RATE
        except ValueError:
            raise ValueError(f"MEDISHOP_DEFAULT_GST must be a number, got {gst_raw!r}")
        return cls(
            return_total_mode=mode or RETURN_TOTAL_SUBTOTAL,
            reverse_customer_total_on_return=_env_flag("MEDISHOP_REVERSE_CUSTOMER_TOTAL", False),
            default_gst_pct=gst,
        )
