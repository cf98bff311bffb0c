"""Recovery codes: the human-typable secret that identifies portfolio ownership.

A code is 16 characters drawn from an alphabet without look-alike glyphs,
shown as ``XXXX-XXXX-XXXX-XXXX``. Input is forgiving: case, whitespace and
hyphens are ignored, and ``O``/``I``/``L`` fold to ``0``/``1``.

Codes are never stored. A portfolio keeps a salted scrypt hash for
verification and an unsalted SHA-256 digest for indexed lookup; the digest
alone cannot authenticate.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass

RECOVERY_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
RECOVERY_CODE_LENGTH = 16
ALLOWED_NORMALIZED_CHARS = frozenset(f"{RECOVERY_CODE_ALPHABET}01")
GROUP_SIZE = 4

HASH_BYTE_LENGTH = 64
SALT_BYTE_LENGTH = 16
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1

_SEPARATORS = re.compile(r"[\s-]+")
_HEX = re.compile(r"^[0-9a-fA-F]+$")


class RecoveryCodeError(ValueError):
    """Base class for malformed recovery codes."""


class InvalidFormat(RecoveryCodeError):
    pass


class InvalidLength(RecoveryCodeError):
    pass


class InvalidCharacter(RecoveryCodeError):
    pass


@dataclass(frozen=True)
class RecoveryCodeHash:
    hash: str
    salt: str


def normalize(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidFormat("Recovery code must be a string")
    normalized = _SEPARATORS.sub("", value).upper().replace("O", "0").replace("I", "1").replace("L", "1")
    if not normalized:
        raise InvalidFormat("Recovery code is required")
    return normalized


def validate_format(normalized: str) -> None:
    if len(normalized) != RECOVERY_CODE_LENGTH:
        raise InvalidLength(f"Recovery code must be {RECOVERY_CODE_LENGTH} characters")
    if any(char not in ALLOWED_NORMALIZED_CHARS for char in normalized):
        raise InvalidCharacter("Recovery code contains invalid characters")


def _canonical(code: object) -> str:
    normalized = normalize(code)
    validate_format(normalized)
    return normalized


def is_valid(code: object) -> bool:
    try:
        _canonical(code)
    except RecoveryCodeError:
        return False
    return True


def generate() -> str:
    canonical = "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))
    groups = [canonical[i : i + GROUP_SIZE] for i in range(0, len(canonical), GROUP_SIZE)]
    if len(groups) * GROUP_SIZE != RECOVERY_CODE_LENGTH or any(len(group) != GROUP_SIZE for group in groups):
        raise RecoveryCodeError("Failed to format recovery code")
    return "-".join(groups)


def _derive(normalized: str, salt: str, length: int = HASH_BYTE_LENGTH) -> bytes:
    # The salt's hex text is the scrypt salt, matching hashes already stored by the API.
    return hashlib.scrypt(
        normalized.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=length,
    )


def hash_code(code: str, salt: str | None = None) -> RecoveryCodeHash:
    normalized = _canonical(code)
    effective_salt = salt if salt is not None else secrets.token_hex(SALT_BYTE_LENGTH)
    return RecoveryCodeHash(hash=_derive(normalized, effective_salt).hex(), salt=effective_salt)


def lookup_key(code: str) -> str:
    return hashlib.sha256(_canonical(code).encode("utf-8")).hexdigest()


def _is_hex(value: object, expected_length: int) -> bool:
    return isinstance(value, str) and len(value) == expected_length and bool(_HEX.fullmatch(value))


def verify(code: object, expected_hash: object, expected_salt: object) -> bool:
    """Constant-time check of ``code`` against a stored hash. Never raises."""
    if not _is_hex(expected_hash, HASH_BYTE_LENGTH * 2) or not _is_hex(expected_salt, SALT_BYTE_LENGTH * 2):
        return False
    try:
        normalized = _canonical(code)
        expected = bytes.fromhex(expected_hash)  # type: ignore[arg-type]
        candidate = _derive(normalized, expected_salt)  # type: ignore[arg-type]
    except (RecoveryCodeError, ValueError, MemoryError):
        return False
    return hmac.compare_digest(candidate, expected)


def format_code(code: str) -> str:
    """Render any accepted spelling of a code in its grouped display form."""
    normalized = _canonical(code)
    return "-".join(normalized[i : i + GROUP_SIZE] for i in range(0, RECOVERY_CODE_LENGTH, GROUP_SIZE))
