"""
Security module: staff PIN hashing.
"""

from shared.security.pin import hash_pin, verify_pin

__all__ = [
    "hash_pin",
    "verify_pin",
]
