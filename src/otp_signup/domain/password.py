"""
Password strength evaluation.

Pure scoring of a candidate password, cheap enough to run on every keystroke.
"""

import re
from dataclasses import dataclass
from enum import Enum

MIN_LENGTH = 8
LONG_LENGTH = 12

SPECIAL_CHARACTERS = "!@#$%^&*()-_=+[]{}|;:,.<>?"

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


class PasswordStrength(str, Enum):
    """Strength buckets reported to the caller."""

    EMPTY = "EMPTY"
    WEAK = "WEAK"
    MEDIUM = "MEDIUM"
    STRONG = "STRONG"


@dataclass(frozen=True)
class PasswordStrengthResult:
    """Strength bucket plus a human-readable hint."""

    strength: PasswordStrength
    message: str


def evaluate_password_strength(password: str) -> PasswordStrengthResult:
    """
    Score a password.

    Blank input is EMPTY and anything shorter than 8 characters is WEAK.
    Otherwise one point each for an uppercase letter, a lowercase letter,
    a digit, a special character and a length of at least 12:
    5 points is STRONG, 3-4 is MEDIUM, fewer is WEAK.
    """
    if not password or not password.strip():
        return PasswordStrengthResult(PasswordStrength.EMPTY, "Enter a password")

    if len(password) < MIN_LENGTH:
        return PasswordStrengthResult(
            PasswordStrength.WEAK, f"Password too short (min {MIN_LENGTH} characters)"
        )

    points = sum(
        (
            bool(_UPPER.search(password)),
            bool(_LOWER.search(password)),
            bool(_DIGIT.search(password)),
            bool(_SPECIAL.search(password)),
            len(password) >= LONG_LENGTH,
        )
    )

    if points >= 5:
        return PasswordStrengthResult(PasswordStrength.STRONG, "Strong password")
    if points >= 3:
        return PasswordStrengthResult(PasswordStrength.MEDIUM, "Medium strength password")
    return PasswordStrengthResult(
        PasswordStrength.WEAK, "Weak password - add more character types"
    )
