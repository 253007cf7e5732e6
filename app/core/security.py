"""API key generation, hashing and verification."""

import hashlib
import hmac
import secrets

API_KEY_BYTES = 24


def generate_api_key() -> str:
    """Generate a random API key.

    Returns:
        48 hexadecimal characters backed by 24 random bytes
    """
    return secrets.token_hex(API_KEY_BYTES)


def hash_api_key(key: str) -> str:
    """Hash an API key for storage.

    Args:
        key: Plain text API key

    Returns:
        SHA-256 hex digest of the key
    """
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def verify_api_key(candidate: str, stored_hash: str) -> bool:
    """Check a presented API key against a stored hash in constant time.

    Args:
        candidate: API key presented by the caller
        stored_hash: Hash previously produced by ``hash_api_key``

    Returns:
        True when the key matches, False otherwise (including malformed input)
    """
    if not isinstance(candidate, str) or not isinstance(stored_hash, str):
        return False
    try:
        return hmac.compare_digest(hash_api_key(candidate), stored_hash)
    except (TypeError, UnicodeEncodeError):
        # compare_digest rejects str operands holding non-ASCII characters
        return False
