"""
Hashing utilities for ledger transaction hashes.
"""

import hashlib
import json
import secrets
from typing import Any, Dict


def hash_payload(payload: Dict[str, Any]) -> str:
    """
    Generate SHA-256 hash of a payload.

    Args:
        payload: Dictionary to hash

    Returns:
        Hexadecimal SHA-256 hash string
    """
    # Sort keys for consistent hashing
    payload_str = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(payload_str.encode()).hexdigest()


def transaction_hash(payload: Dict[str, Any]) -> str:
    """Hash a payload together with a random nonce, formatted as ``0x<hex>``."""
    salted = dict(payload, _nonce=secrets.token_hex(16))
    return "0x" + hash_payload(salted)
