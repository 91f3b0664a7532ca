"""Vendor PIN hashing.

The bcrypt hash is base64-wrapped before it is stored, because a raw
bcrypt string contains "$" characters that env files and some sheet
exports mangle.
"""
import base64
import binascii
import logging
import re

import bcrypt

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{6}$")
BCRYPT_ROUNDS = 10


def is_valid_pin(pin: str) -> bool:
    """A PIN is exactly six ASCII digits."""
    return bool(PIN_PATTERN.match((pin or "").strip()))


def hash_pin(pin: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """bcrypt-hash a PIN and return the base64-wrapped hash."""
    pin = (pin or "").strip()
    if not is_valid_pin(pin):
        raise ValueError("PIN must be 6 digits")
    hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return base64.b64encode(hashed).decode("ascii")


def verify_pin(pin: str, pin_hash_b64: str) -> bool:
    """Check a PIN against a base64-wrapped bcrypt hash."""
    pin = (pin or "").strip()
    if not is_valid_pin(pin) or not pin_hash_b64:
        return False
    try:
        hashed = base64.b64decode(pin_hash_b64.strip(), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Stored PIN hash is not valid base64")
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), hashed)
    except ValueError:
        logger.warning("Stored PIN hash is not a bcrypt hash")
        return False
