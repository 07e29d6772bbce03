"""
Tests for archive_kernel.domain.pattern.

Validates the archive candidate naming convention for both observed digit
counts (7 and 10) and the purity/totality of the predicate.
"""

import re
from dataclasses import FrozenInstanceError

import pytest
from hypothesis import given
from hypothesis import strategies as st

from archive_kernel.domain.pattern import DEFAULT_DIGIT_COUNT, PatternMatcher


# =============================================================================
# Examples
# =============================================================================


class TestTenDigitMatcher:
    @pytest.fixture
    def matcher(self) -> PatternMatcher:
        return PatternMatcher(10)

    def test_default_is_ten(self):
        assert DEFAULT_DIGIT_COUNT == 10
        assert PatternMatcher().digit_count == 10

    def test_matches_report_name(self, matcher):
        assert matcher.matches("2024010112-report.csv")

    def test_too_few_digits(self, matcher):
        assert not matcher.matches("123-report.csv")

    def test_letters_instead_of_digits(self, matcher):
        assert not matcher.matches("abc-report.csv")

    def test_eleven_digits_rejected(self, matcher):
        assert not matcher.matches("20240101123-report.csv")

    def test_nine_digits_rejected(self, matcher):
        assert not matcher.matches("202401011-report.csv")

    def test_missing_hyphen(self, matcher):
        assert not matcher.matches("2024010112_report.csv")
        assert not matcher.matches("2024010112")

    def test_no_extension_check(self, matcher):
        assert matcher.matches("2024010112-")
        assert matcher.matches("2024010112-whatever.exe")

    def test_no_digit_value_check(self, matcher):
        assert matcher.matches("0000000000-zeros")
        assert matcher.matches("9999999999-nines")

    def test_leading_characters_rejected(self, matcher):
        assert not matcher.matches(" 2024010112-report.csv")
        assert not matcher.matches("x2024010112-report.csv")

    def test_non_ascii_digits_rejected(self, matcher):
        arabic_indic = "٠" * 10
        assert not matcher.matches(f"{arabic_indic}-report.csv")

    def test_empty_string(self, matcher):
        assert not matcher.matches("")


class TestSevenDigitMatcher:
    @pytest.fixture
    def matcher(self) -> PatternMatcher:
        return PatternMatcher(7)

    def test_exactly_seven(self, matcher):
        assert matcher.matches("1234567-a.csv")

    def test_ten_digit_name_rejected(self, matcher):
        assert not matcher.matches("2024010112-report.csv")

    def test_six_digits_rejected(self, matcher):
        assert not matcher.matches("123456-a.csv")


class TestConstruction:
    def test_frozen(self):
        matcher = PatternMatcher(7)
        with pytest.raises(FrozenInstanceError):
            matcher.digit_count = 10  # type: ignore[misc]

    @pytest.mark.parametrize("bad", [0, -1])
    def test_non_positive_rejected(self, bad):
        with pytest.raises(ValueError, match="positive"):
            PatternMatcher(bad)

    @pytest.mark.parametrize("bad", ["10", 7.0, True])
    def test_non_int_rejected(self, bad):
        with pytest.raises(ValueError, match="int"):
            PatternMatcher(bad)  # type: ignore[arg-type]

    def test_equality_by_digit_count(self):
        assert PatternMatcher(7) == PatternMatcher(7)
        assert PatternMatcher(7) != PatternMatcher(10)


# =============================================================================
# Properties
# =============================================================================


digit_counts = st.integers(min_value=1, max_value=16)
ascii_digits = st.sampled_from("0123456789")


class TestMatcherProperties:
    @given(n=digit_counts, name=st.text())
    def test_agrees_with_reference_regex(self, n, name):
        expected = re.match(rf"^[0-9]{{{n}}}-", name) is not None
        assert PatternMatcher(n).matches(name) is expected

    @given(
        n=digit_counts,
        digits=st.data(),
        suffix=st.text(),
    )
    def test_n_digits_and_hyphen_always_match(self, n, digits, suffix):
        prefix = "".join(digits.draw(st.lists(ascii_digits, min_size=n, max_size=n)))
        assert PatternMatcher(n).matches(f"{prefix}-{suffix}")

    @given(n=digit_counts, extra=st.integers(min_value=1, max_value=5), suffix=st.text())
    def test_more_digits_never_match(self, n, extra, suffix):
        assert not PatternMatcher(n).matches("1" * (n + extra) + "-" + suffix)

    @given(n=digit_counts, name=st.text())
    def test_total_over_strings(self, n, name):
        assert PatternMatcher(n).matches(name) in (True, False)
