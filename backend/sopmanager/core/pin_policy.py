"""
PIN policy: format, weak-pattern and strength rules for 4-digit staff PINs.

Pure functions, no I/O. Hashing lives in core/security.py.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sopmanager.core.config import settings
from sopmanager.core.errors import ErrorCode

PIN_LENGTH = 4
PIN_PATTERN = re.compile(r"^[0-9]{4}$")

STRENGTH_LEVELS = ("weak", "medium", "strong")

WEAK_PIN_PATTERNS = frozenset(
    # Sequential
    ["0123", "1234", "2345", "3456", "4567", "5678", "6789", "7890",
     "9876", "8765", "7654", "6543", "5432", "4321", "3210"]
    # Repeated
    + [str(d) * 4 for d in range(10)]
    # Alternating pairs
    + ["1212", "2121", "1313", "3131", "1414", "4141", "1515", "5151",
       "2323", "3232", "2424", "4242", "2525", "5252", "2626", "6262",
       "3434", "4343", "3535", "5353", "3636", "6363", "4545", "5454",
       "4646", "6464", "5656", "6565", "5757", "7575", "6767", "7676",
       "6868", "8686", "7878", "8787", "7979", "9797", "8989", "9898",
       "6969", "9696", "0101", "1010"]
    # Common dates (MMDD)
    + ["0101", "0102", "0201", "0202", "1225", "1224", "0401", "0501",
       "0701", "0801", "0901", "1001", "1101", "1201",
       "1231", "0704", "1122", "0911"]
    # Doubled pairs
    + ["1001", "2002", "3003", "4004", "5005"]
    # Years
    + [str(year) for year in range(1950, 2031)]
    # Keypad shapes
    + ["1357", "2468", "1590", "7410", "8520", "9630", "2580", "0852"]
)


@dataclass
class PinValidationResult:
    valid: bool
    strength: str
    score: int
    errors: List[str] = field(default_factory=list)
    error_code: Optional[ErrorCode] = None


def is_valid_pin_format(pin: Optional[str]) -> bool:
    return isinstance(pin, str) and bool(PIN_PATTERN.match(pin))


def is_weak_pin(pin: str) -> bool:
    return pin in WEAK_PIN_PATTERNS


def _is_arithmetic_sequence(digits: List[int]) -> bool:
    step = digits[1] - digits[0]
    return all(digits[i + 1] - digits[i] == step for i in range(len(digits) - 1))


def _digit_entropy(pin: str) -> float:
    """Shannon entropy in base 10; only four distinct digits clear 0.6"""
    counts = Counter(pin)
    return -sum((c / len(pin)) * math.log(c / len(pin), 10) for c in counts.values())


def calculate_pin_score(pin: str) -> int:
    """0-100 strength score for a well-formed PIN"""
    digits = [int(ch) for ch in pin]
    score = 0.0

    score += (len(set(digits)) / len(digits)) * 30

    if all(digits[i] != digits[i + 1] for i in range(len(digits) - 1)):
        score += 20

    if all(abs(digits[i] - digits[i + 1]) != 1 for i in range(len(digits) - 1)):
        score += 25

    if not _is_arithmetic_sequence(digits):
        score += 15

    if _digit_entropy(pin) > 0.6:
        score += 10

    return int(round(score))


def strength_from_score(score: int) -> str:
    if score >= 80:
        return "strong"
    if score >= 50:
        return "medium"
    return "weak"


def meets_min_strength(strength: str, minimum: Optional[str] = None) -> bool:
    minimum = minimum or settings.PIN_MIN_STRENGTH
    return STRENGTH_LEVELS.index(strength) >= STRENGTH_LEVELS.index(minimum)


def validate_pin(pin: Optional[str], min_strength: Optional[str] = None) -> PinValidationResult:
    """Check format, weak patterns and strength of a candidate PIN"""
    if not is_valid_pin_format(pin):
        return PinValidationResult(
            valid=False,
            strength="weak",
            score=0,
            errors=["PIN must be exactly 4 digits"],
            error_code=ErrorCode.INVALID_PIN_FORMAT,
        )

    errors: List[str] = []
    if is_weak_pin(pin):
        score = min(calculate_pin_score(pin), 49)
        errors.append("PIN matches a commonly used pattern")
    else:
        score = calculate_pin_score(pin)

    strength = strength_from_score(score)
    if not meets_min_strength(strength, min_strength):
        errors.append(f"PIN strength '{strength}' is below the required '{min_strength or settings.PIN_MIN_STRENGTH}'")

    return PinValidationResult(
        valid=not errors,
        strength=strength,
        score=score,
        errors=errors,
        error_code=ErrorCode.WEAK_PIN if errors else None,
    )


def validate_pin_change(current_pin: str, new_pin: str, confirm_pin: str) -> PinValidationResult:
    """Rules for a staff member changing their own PIN"""
    if new_pin != confirm_pin:
        return PinValidationResult(
            valid=False, strength="weak", score=0,
            errors=["PIN confirmation does not match"],
            error_code=ErrorCode.PIN_MISMATCH,
        )
    if current_pin == new_pin:
        return PinValidationResult(
            valid=False, strength="weak", score=0,
            errors=["New PIN must be different from the current PIN"],
            error_code=ErrorCode.PIN_REUSED,
        )
    return validate_pin(new_pin)


def is_pin_expired(pin_changed_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A PIN never changed, or older than PIN_MAX_AGE_DAYS, is expired"""
    if pin_changed_at is None:
        return True
    now = now or datetime.utcnow()
    return now - pin_changed_at > timedelta(days=settings.PIN_MAX_AGE_DAYS)


def lockout_minutes(failed_attempts: int) -> int:
    """
    Lock length after `failed_attempts` consecutive failures.

    No lock up to PIN_MAX_ATTEMPTS, then base * 2^(excess - 1), capped at 2^6.
    """
    excess = failed_attempts - settings.PIN_MAX_ATTEMPTS
    if excess <= 0:
        return 0
    return settings.PIN_LOCKOUT_DURATION_MINUTES * (2 ** min(excess - 1, 6))
