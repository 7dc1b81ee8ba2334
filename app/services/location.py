"""
Area name canonicalization used by provider search.

Customers and providers type their area free-hand ("Cidco N-2", "cidco",
"Aurngabad"). normalize() folds those into a small set of canonical tokens
so that search can compare them with plain substring checks.
"""

import json
import logging
from functools import lru_cache
from typing import Mapping, Optional

from app.core.config import LOCATION_ALIASES_FILE

logger = logging.getLogger(__name__)

# Evaluated in insertion order, first contained key wins
DEFAULT_ALIASES: dict[str, str] = {
    "aurngabad": "aurangabad",
    "orangabad": "aurangabad",
    "abad": "aurangabad",
    "sambhajinagar": "aurangabad",
    "cidco": "cidco",
    "n1": "cidco",
    "n2": "cidco",
    "n3": "cidco",
    "n4": "cidco",
    "hudco": "hudco",
    "tv center": "hudco",
    "beed bypass": "beed bypass",
    "waluj": "waluj",
    "pandharpur": "waluj",
    "chikalthana": "chikalthana",
    "garkheda": "garkheda",
}


class LocationNormalizer:
    def __init__(self, aliases: Optional[Mapping[str, str]] = None):
        source = DEFAULT_ALIASES if aliases is None else aliases
        self.aliases = {k.lower().strip(): v.lower().strip() for k, v in source.items() if k.strip()}

        # every canonical value has to map back onto itself, otherwise
        # normalize(normalize(x)) could drift away from normalize(x)
        for canonical in set(self.aliases.values()):
            resolved = self.normalize(canonical)
            if resolved != canonical:
                raise ValueError(f"Alias table is not stable: '{canonical}' normalizes to '{resolved}'")

    def normalize(self, raw: Optional[str]) -> str:
        if not raw:
            return ""
        lower = raw.lower().strip()
        for key, canonical in self.aliases.items():
            if key in lower:
                return canonical
        return lower

    def matches(self, left: Optional[str], right: Optional[str]) -> bool:
        """True when either normalized area contains the other."""
        a = self.normalize(left)
        b = self.normalize(right)
        return a in b or b in a


def load_aliases(path: str) -> dict[str, str]:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object of alias -> canonical area")
    return {str(k): str(v) for k, v in data.items()}


@lru_cache
def get_normalizer() -> LocationNormalizer:
    if LOCATION_ALIASES_FILE:
        logger.info(f"Loading area aliases from {LOCATION_ALIASES_FILE}")
        return LocationNormalizer(load_aliases(LOCATION_ALIASES_FILE))
    return LocationNormalizer()


def normalize(raw: Optional[str]) -> str:
    return get_normalizer().normalize(raw)
