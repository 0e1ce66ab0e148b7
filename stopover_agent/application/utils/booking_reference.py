from __future__ import annotations

import secrets
import string
from typing import Iterable

_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_reference(exclude: Iterable[str] = (), length: int = 5) -> str:
    """Random PNR-style reference, never equal to any value in `exclude`."""
    taken = {(e or "").strip().upper() for e in exclude}
    while True:
        reference = "".join(secrets.choice(_ALPHABET) for _ in range(length))
        if reference not in taken:
            return reference
