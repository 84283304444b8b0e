"""
Unit Tests for the PIN policy
"""
import pytest
from datetime import datetime, timedelta

from sopmanager.core.errors import ErrorCode
from sopmanager.core.pin_policy import (
    is_valid_pin_format,
    is_weak_pin,
    calculate_pin_score,
    strength_from_score,
    meets_min_strength,
    validate_pin,
    validate_pin_change,
    is_pin_expired,
    lockout_minutes,
)


class TestPinFormat:

    @pytest.mark.parametrize('pin', ['0000', '7294', '1000'])
    def test_valid_format(self, pin):
        assert is_valid_pin_format(pin) is True

    @pytest.mark.parametrize('pin', ['', '123', '12345', '12a4', ' 123', None, 1234])
    def test_invalid_format(self, pin):
        assert is_valid_pin_format(pin) is False


class TestWeakPatterns:

    @pytest.mark.parametrize('pin', ['1234', '4321', '0000', '9999', '1212', '2580', '1990', '2024'])
    def test_common_pins_are_weak(self, pin):
        assert is_weak_pin(pin) is True

    @pytest.mark.parametrize('pin', ['7890', '3210'])
    def test_sequences_are_weak(self, pin):
        assert is_weak_pin(pin) is True

    @pytest.mark.parametrize('pin', ['2525', '5252', '3434', '4646', '7979', '9898'])
    def test_alternating_pairs_are_weak(self, pin):
        assert is_weak_pin(pin) is True

    @pytest.mark.parametrize('pin', ['0202', '1224', '0401', '0501', '0701', '0901', '1101', '1201'])
    def test_common_dates_are_weak(self, pin):
        assert is_weak_pin(pin) is True

    @pytest.mark.parametrize('pin', ['1001', '2002', '3003', '4004', '5005'])
    def test_doubled_pairs_are_weak(self, pin):
        assert is_weak_pin(pin) is True

    @pytest.mark.parametrize('pin', ['2525', '7890', '0401'])
    def test_added_patterns_fail_policy(self, pin):
        result = validate_pin(pin)

        assert result.valid is False
        assert result.error_code == ErrorCode.WEAK_PIN

    def test_random_pin_is_not_weak(self):
        assert is_weak_pin('7294') is False

    def test_weak_pattern_caps_score(self):
        result = validate_pin('1357')

        assert result.valid is False
        assert result.score <= 49
        assert result.strength == 'weak'
        assert result.error_code == ErrorCode.WEAK_PIN


class TestPinScore:

    def test_strong_pin(self):
        assert calculate_pin_score('7294') == 100
        assert strength_from_score(100) == 'strong'

    def test_medium_pin(self):
        # Two distinct digits, no adjacent repeats or steps
        assert calculate_pin_score('5050') == 75
        assert strength_from_score(75) == 'medium'

    def test_weak_pin(self):
        assert calculate_pin_score('1123') == 38
        assert strength_from_score(38) == 'weak'

    def test_three_distinct_digits_get_no_distribution_bonus(self):
        # 22.5 for uniqueness, 20 without repeats, 15 non-arithmetic
        assert calculate_pin_score('1218') == 58

    def test_four_distinct_digits_get_distribution_bonus(self):
        assert calculate_pin_score('4826') == 100

    def test_strength_boundaries(self):
        assert strength_from_score(80) == 'strong'
        assert strength_from_score(79) == 'medium'
        assert strength_from_score(50) == 'medium'
        assert strength_from_score(49) == 'weak'

    def test_meets_min_strength(self):
        assert meets_min_strength('strong', 'medium') is True
        assert meets_min_strength('medium', 'medium') is True
        assert meets_min_strength('weak', 'medium') is False
        assert meets_min_strength('medium', 'strong') is False


class TestValidatePin:

    def test_strong_pin_is_valid(self):
        result = validate_pin('7294')

        assert result.valid is True
        assert result.errors == []
        assert result.error_code is None

    def test_medium_pin_passes_default_policy(self):
        assert validate_pin('5050').valid is True

    def test_medium_pin_fails_strong_policy(self):
        result = validate_pin('5050', min_strength='strong')

        assert result.valid is False
        assert result.error_code == ErrorCode.WEAK_PIN

    def test_bad_format(self):
        result = validate_pin('12')

        assert result.valid is False
        assert result.score == 0
        assert result.error_code == ErrorCode.INVALID_PIN_FORMAT


class TestPinChange:

    def test_confirmation_mismatch(self):
        result = validate_pin_change('7294', '5083', '5084')

        assert result.valid is False
        assert result.error_code == ErrorCode.PIN_MISMATCH

    def test_reusing_current_pin(self):
        result = validate_pin_change('7294', '7294', '7294')

        assert result.valid is False
        assert result.error_code == ErrorCode.PIN_REUSED

    def test_new_pin_goes_through_strength_rules(self):
        assert validate_pin_change('7294', '1234', '1234').error_code == ErrorCode.WEAK_PIN
        assert validate_pin_change('7294', '5083', '5083').valid is True


class TestPinExpiry:

    def test_never_changed_is_expired(self):
        assert is_pin_expired(None) is True

    def test_recent_pin(self):
        assert is_pin_expired(datetime.utcnow() - timedelta(days=10)) is False

    def test_old_pin(self):
        now = datetime(2026, 6, 1)
        assert is_pin_expired(now - timedelta(days=91), now=now) is True
        assert is_pin_expired(now - timedelta(days=90), now=now) is False


class TestLockout:

    @pytest.mark.parametrize('attempts', [0, 1, 4, 5])
    def test_no_lock_within_allowance(self, attempts):
        assert lockout_minutes(attempts) == 0

    def test_lock_doubles_per_extra_failure(self):
        assert lockout_minutes(6) == 15
        assert lockout_minutes(7) == 30
        assert lockout_minutes(8) == 60

    def test_lock_is_capped(self):
        assert lockout_minutes(12) == 15 * 64
        assert lockout_minutes(50) == 15 * 64
