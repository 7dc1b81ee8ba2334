"""
Completion PIN derived from the booking id.

The customer is shown the PIN and reads it out to the provider, who types it
in to close the job. Nothing is stored: both sides recompute it from the id.
Anyone who can see the booking id can derive the PIN, so this is a
confirmation code, not a secret.
"""

import re

EMPTY_ID_PIN = "123456"
UNPARSABLE_ID_PIN = "849201"

_LEADING_HEX = re.compile(r"[0-9a-fA-F]+")


def completion_pin(booking_id: str) -> str:
    if not booking_id:
        return EMPTY_ID_PIN

    fragment = booking_id.replace("-", "")[-6:]
    # like parseInt(x, 16): read the leading hex digits, ignore the rest
    match = _LEADING_HEX.match(fragment.lstrip())
    if not match:
        return UNPARSABLE_ID_PIN

    n = int(match.group(0), 16)
    return str((n * 7 + 13) % 1_000_000).zfill(6)


def pin_matches(booking_id: str, candidate: str) -> bool:
    return completion_pin(booking_id) == candidate
