# Overview: Unique, unguessable identifiers for purchases, access credentials and receipts.

"""
Identifier Service

Three flavors, each combining a high-resolution timestamp with a random
component drawn from `secrets` and encoded base36:

- Entity ids:        id_<random9><timestamp>
- Access credentials: tok_<random24><timestamp>
- Receipt numbers:   RCP-<TIMESTAMP>-<RANDOM8>   (upper-case, human-scannable)

Collisions are not detected here. Storage carries unique constraints on
receipt numbers and primary keys, and purchase flows retry with fresh
identifiers on an insertion conflict (see services/concurrency.py).
"""

import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

ENTITY_PREFIX = "id_"
ACCESS_TOKEN_PREFIX = "tok_"
RECEIPT_PREFIX = "RCP"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def _random_base36(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def _timestamp_base36() -> str:
    return to_base36(time.time_ns())


def generate_id(prefix: str = ENTITY_PREFIX) -> str:
    """Generic entity id (purchases, orders, users, idempotency keys)."""
    return f"{prefix}{_random_base36(9)}{_timestamp_base36()}"


def generate_access_token() -> str:
    """Opaque access credential handed to the buyer of an event."""
    return f"{ACCESS_TOKEN_PREFIX}{_random_base36(24)}{_timestamp_base36()}"


def generate_receipt_number() -> str:
    return f"{RECEIPT_PREFIX}-{_timestamp_base36().upper()}-{_random_base36(8).upper()}"


def generate_idempotency_key() -> str:
    """Fresh key for one payment-processor charge attempt."""
    return generate_id()
