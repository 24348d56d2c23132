import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def _random_fragment(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_id() -> str:
    """Timestamp in base36 plus two random base36 fragments, e.g. ``lr4x9k2a-8f3k...-q2m...``."""
    timestamp = to_base36(time.time_ns() // 1_000_000)
    return f"{timestamp}-{_random_fragment(13)}-{_random_fragment(7)}"
