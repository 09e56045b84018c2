"""Password hashing for protected shares.

Hashes are stored as ``pbkdf2_sha256$<iterations>$<salt>$<digest>`` with the
salt and digest base64 encoded, so the iteration count can be raised later
without invalidating existing shares.

Usage:
    from tempshare.core.passwords import hash_password, verify_password

    stored = hash_password("secret")
    assert verify_password("secret", stored)
"""

import base64
import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
SALT_SIZE = 16
DIGEST_SIZE = 32

# PBKDF2-HMAC-SHA256 with 600,000 iterations (OWASP 2023 recommendation)
DEFAULT_ITERATIONS = 600_000


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations=iterations,
        dklen=DIGEST_SIZE,
    )


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Hash a plaintext password with a fresh random salt.

    Args:
        password: Plaintext password
        iterations: PBKDF2 iteration count

    Returns:
        Encoded hash string suitable for storage
    """
    salt = secrets.token_bytes(SALT_SIZE)
    digest = _derive(password, salt, iterations)
    return "$".join(
        [
            ALGORITHM,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    """Check a plaintext password against a stored hash.

    Malformed hashes never match.
    """
    try:
        algorithm, iterations, salt_b64, digest_b64 = encoded.split("$")
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
        rounds = int(iterations)
    except ValueError:
        return False

    if algorithm != ALGORITHM or rounds < 1:
        return False

    return hmac.compare_digest(_derive(password, salt, rounds), expected)
