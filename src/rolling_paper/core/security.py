"""Password helpers for message ownership and the export secret."""
from __future__ import annotations

import hashlib
import hmac


def hash_password(password: str) -> str:
    """Return the hex SHA-256 digest of a message password.

    Digests are unsalted so that logs written by earlier deployments keep
    verifying. This protects casual edits, not accounts.
    """
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if ``password`` hashes to ``password_hash``."""
    return hmac.compare_digest(hash_password(password), password_hash)


def check_secret(supplied: str, expected: str) -> bool:
    """Constant-time comparison of a shared secret."""
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
