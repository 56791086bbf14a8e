"""Domain constants for currency codes and rate kinds.

Kept lightweight; aliases live here so every lookup path shares one table.
"""

from datetime import datetime, timezone
from typing import Dict, Tuple

RATE_KINDS: Tuple[str, ...] = ("cash", "remit", "middle")

# Pure synonyms, rewritten on every lookup.
CURRENCY_ALIASES: Dict[str, str] = {
    "RMB": "CNY",
}

# Offshore stand-in used for CNY only when a graph has no native CNY node.
CNY_FALLBACK = "CNH"

# Timestamp of seeded identity edges and of unprovided pairs.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
