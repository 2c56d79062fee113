"""Short human-readable order codes (display order ids) and internal ids.

Display ids look like ``ORD-AB12CD``: a prefix plus six characters drawn
from upper-case letters and digits. They are for people, not for lookups;
uniqueness is only statistical (36**6 ≈ 2.2e9 per prefix).
"""

import secrets
import string
import uuid

_ALPHABET = string.ascii_uppercase + string.digits
_CODE_LENGTH = 6


def generate_display_order_id(prefix: str = "ORD") -> str:
    code = "".join(secrets.choice(_ALPHABET) for _ in range(_CODE_LENGTH))
    return f"{prefix}-{code}"


def generate_id() -> str:
    """Opaque unique id, same shape as the database's gen_random_uuid()."""
    return str(uuid.uuid4())
