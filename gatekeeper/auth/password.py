"""
Gatekeeper - Password Hashing Utilities

PBKDF2-HMAC-SHA256 password hashing with a per-password random salt.
The iteration count is configurable but defaults to 10,000.

Stored format:
    base64( salt[32 bytes] || derived_key[32 bytes] )

Security:
- Never log or expose plaintext passwords
- A fresh salt is drawn from the OS CSPRNG for every hash
- Verification compares keys in constant time
- Hashing is CPU-bound; async callers must run it in a worker thread
"""

import base64
import binascii
import hashlib
import re
import secrets
import string
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, model_validator


# Salt and derived key widths in bytes (256 bits each)
SALT_SIZE = 32
KEY_SIZE = 32

# PBKDF2 iteration count
# Increase for higher security, decrease for faster tests
PBKDF2_ITERATIONS = 10_000

_HASH_NAME = "sha256"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MIN_GENERATED_LENGTH = 6

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

COMMON_PASSWORDS = frozenset({
    "password",
    "123456",
    "123456789",
    "qwerty",
    "abc123",
    "password123",
    "admin",
    "letmein",
    "welcome",
    "monkey",
})

_SYMBOL_RE = re.compile("[" + re.escape(SYMBOLS) + "]")


class EmptyPasswordError(ValueError):
    """Raised when an empty password is passed to hash()."""
    pass


class PasswordViolation(str, Enum):
    """
    Reason codes produced by the password strength policy.

    Codes are stable identifiers; `message` is the user-facing text.
    """
    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    MISSING_LOWERCASE = "missing_lowercase"
    MISSING_UPPERCASE = "missing_uppercase"
    MISSING_DIGIT = "missing_digit"
    MISSING_SYMBOL = "missing_symbol"
    COMMON_PASSWORD = "common_password"
    SEQUENTIAL_CHARS = "sequential_chars"
    REPEATING_CHARS = "repeating_chars"

    @property
    def message(self) -> str:
        return _VIOLATION_MESSAGES[self]


_VIOLATION_MESSAGES = {
    PasswordViolation.EMPTY: "Password cannot be empty",
    PasswordViolation.TOO_SHORT: f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
    PasswordViolation.TOO_LONG: f"Password cannot be longer than {MAX_PASSWORD_LENGTH} characters",
    PasswordViolation.MISSING_LOWERCASE: "Password must contain at least one lowercase letter",
    PasswordViolation.MISSING_UPPERCASE: "Password must contain at least one uppercase letter",
    PasswordViolation.MISSING_DIGIT: "Password must contain at least one digit",
    PasswordViolation.MISSING_SYMBOL: "Password must contain at least one special character (!@#$%^&* etc.)",
    PasswordViolation.COMMON_PASSWORD: "This password is too common. Please choose a more secure one",
    PasswordViolation.SEQUENTIAL_CHARS: "Password must not contain sequential characters (123, abc etc.)",
    PasswordViolation.REPEATING_CHARS: "Password must not repeat the same character four or more times in a row",
}


class PasswordPolicyResult(BaseModel):
    """
    Outcome of a password strength check.

    Either valid with no violations, or invalid with at least one.
    """
    valid: bool
    violations: List[PasswordViolation] = Field(default_factory=list)

    @model_validator(mode="after")
    def consistent(self) -> "PasswordPolicyResult":
        if self.valid == bool(self.violations):
            raise ValueError("valid must be True exactly when there are no violations")
        return self

    @classmethod
    def from_violations(cls, violations: List[PasswordViolation]) -> "PasswordPolicyResult":
        return cls(valid=not violations, violations=violations)

    @property
    def messages(self) -> List[str]:
        """User-facing messages, in violation order."""
        return [v.message for v in self.violations]


def _constant_time_equals(a: bytes, b: bytes) -> bool:
    """
    Compare two byte strings without an early exit.

    Every byte pair is XOR-accumulated so the running time depends only on
    the length, not on where the first difference occurs.
    """
    if len(a) != len(b):
        return False

    diff = 0
    for x, y in zip(a, b):
        diff |= x ^ y
    return diff == 0


def _has_sequential_chars(password: str) -> bool:
    """True if three consecutive characters form an ascending run (abc, 123)."""
    for i in range(len(password) - 2):
        a, b, c = (ord(ch) for ch in password[i:i + 3])
        if b == a + 1 and c == b + 1:
            return True
    return False


def _has_repeating_chars(password: str) -> bool:
    """True if any character repeats four or more times in a row."""
    for i in range(len(password) - 3):
        if password[i] == password[i + 1] == password[i + 2] == password[i + 3]:
            return True
    return False


class PasswordService:
    """
    Hashes, verifies, generates and grades passwords.

    Holds no mutable state; one instance can be shared freely.

    Example:
        >>> service = PasswordService()
        >>> stored = service.hash("Tr0ub4dor&3")
        >>> service.verify("Tr0ub4dor&3", stored)
        True
    """

    def __init__(self, iterations: int = PBKDF2_ITERATIONS):
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        self.iterations = iterations

    def _derive(self, password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac(
            _HASH_NAME,
            password.encode("utf-8"),
            salt,
            self.iterations,
            dklen=KEY_SIZE,
        )

    def hash(self, password: str) -> str:
        """
        Hash a password with a fresh random salt.

        Args:
            password: Plaintext password

        Returns:
            base64 string of salt || derived key

        Raises:
            EmptyPasswordError: If password is empty
        """
        if not password:
            raise EmptyPasswordError("Password cannot be empty")

        salt = secrets.token_bytes(SALT_SIZE)
        key = self._derive(password, salt)
        return base64.b64encode(salt + key).decode("ascii")

    def verify(self, password: str, stored: str) -> bool:
        """
        Verify a password against a stored credential.

        Never raises: empty input, undecodable data and wrong-length blobs
        all return False.

        Args:
            password: Plaintext password to check
            stored: Value previously returned by hash()

        Returns:
            True if password matches, False otherwise
        """
        if not password or not stored:
            return False

        try:
            raw = base64.b64decode(stored, validate=True)
        except (binascii.Error, ValueError):
            return False

        if len(raw) != SALT_SIZE + KEY_SIZE:
            return False

        salt, stored_key = raw[:SALT_SIZE], raw[SALT_SIZE:]
        return _constant_time_equals(stored_key, self._derive(password, salt))

    def generate_random(self, length: int = 12, include_symbols: bool = True) -> str:
        """
        Generate a random password containing every active character class.

        Lengths below 6 are raised to 6. One character of each class is
        seeded first, the rest are drawn from the combined alphabet, and the
        result is shuffled so the seeded characters have no fixed position.
        """
        length = max(length, MIN_GENERATED_LENGTH)
        rng = secrets.SystemRandom()

        classes = [LOWERCASE, UPPERCASE, DIGITS]
        if include_symbols:
            classes.append(SYMBOLS)
        alphabet = "".join(classes)

        chars = [rng.choice(cls) for cls in classes]
        chars.extend(rng.choice(alphabet) for _ in range(length - len(chars)))
        rng.shuffle(chars)
        return "".join(chars)

    def validate_strength(self, password: str) -> PasswordPolicyResult:
        """
        Check a password against the strength policy.

        All rules are evaluated and every violation is reported, except for
        empty input which yields the single EMPTY violation.
        """
        if not password:
            return PasswordPolicyResult.from_violations([PasswordViolation.EMPTY])

        violations = []

        if len(password) < MIN_PASSWORD_LENGTH:
            violations.append(PasswordViolation.TOO_SHORT)
        if len(password) > MAX_PASSWORD_LENGTH:
            violations.append(PasswordViolation.TOO_LONG)

        if not re.search(r"[a-z]", password):
            violations.append(PasswordViolation.MISSING_LOWERCASE)
        if not re.search(r"[A-Z]", password):
            violations.append(PasswordViolation.MISSING_UPPERCASE)
        if not re.search(r"\d", password):
            violations.append(PasswordViolation.MISSING_DIGIT)
        if not _SYMBOL_RE.search(password):
            violations.append(PasswordViolation.MISSING_SYMBOL)

        if password.lower() in COMMON_PASSWORDS:
            violations.append(PasswordViolation.COMMON_PASSWORD)

        if _has_sequential_chars(password):
            violations.append(PasswordViolation.SEQUENTIAL_CHARS)
        if _has_repeating_chars(password):
            violations.append(PasswordViolation.REPEATING_CHARS)

        return PasswordPolicyResult.from_violations(violations)
