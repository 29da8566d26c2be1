"""
Small shared helpers
"""

import secrets
import time

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    """Render a non-negative integer in lower-case base 36"""
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_event_id(prefix: str = "evt") -> str:
    """`<prefix>_<base36 epoch ms>_<12 hex chars>`"""
    timestamp = to_base36(int(time.time() * 1000))
    return f"{prefix}_{timestamp}_{secrets.token_hex(6)}"
