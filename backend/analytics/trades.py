"""Shared trade vocabulary and the derived P/L rule."""

from typing import Tuple

SIDES = ("BUY", "SELL")

# Stable ordering, also used to break ties between moods in analytics.
MOODS = ("CALM", "CONFIDENT", "OVERCONFIDENT", "ANXIOUS", "FOMO", "PANICKED")
DEFAULT_MOOD = "CALM"

SYMBOL_MAX_LENGTH = 50
REMARKS_MAX_LENGTH = 500

TRUTHY_VALUES = frozenset({"yes", "true", "1"})


def compute_profit_loss(entry_price: float, exit_price: float, quantity: int, charges: float = 0.0) -> Tuple[float, float]:
    """Return (gross, net) P/L rounded to 2 decimals. Net is always gross - charges."""
    gross = round((float(exit_price) - float(entry_price)) * int(quantity), 2)
    net = round(gross - float(charges or 0.0), 2)
    return gross, net


def is_truthy(value) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES
