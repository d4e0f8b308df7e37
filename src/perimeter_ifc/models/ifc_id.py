"""IFC GlobalId generation and handling.

IFC uses 22-character compressed GUIDs: 128 random bits padded to 132 bits
and written as twenty-two 6-bit digits over the alphabet ``0-9A-Za-z_$``.
Uniqueness is probabilistic; ids are never deduplicated.
"""

from __future__ import annotations

import logging
import os
import random
import string

import ifcopenshell.guid

logger = logging.getLogger(__name__)

IFC_ID_CHARSET = string.digits + string.ascii_uppercase + string.ascii_lowercase + "_$"
IFC_ID_LENGTH = 22

_warned_insecure = False


def _random_bits() -> int:
    """128 random bits, from the OS source when there is one."""
    global _warned_insecure
    try:
        return int.from_bytes(os.urandom(16), "big")
    except NotImplementedError:
        if not _warned_insecure:
            logger.warning("No secure random source available, GlobalIds use a PRNG")
            _warned_insecure = True
        return random.getrandbits(128)


def generate_ifc_id() -> str:
    """Generate a new IFC-compatible GlobalId (22 characters)."""
    return ifcopenshell.guid.compress(f"{_random_bits():032x}")


def is_valid_ifc_id(value: str) -> bool:
    """Check if a string is a valid 22-character IFC GlobalId."""
    return (
        isinstance(value, str)
        and len(value) == IFC_ID_LENGTH
        and value[0] in "0123"
        and all(c in IFC_ID_CHARSET for c in value)
    )
