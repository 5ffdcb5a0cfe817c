"""Unit tests for subject line boundary resolution."""

import pytest

from alfieri_bot.errors import SemanticError
from alfieri_bot.subject_line import resolve_boundaries, tokenize_subject


class TestSubjectLineUnit:
    """Unit tests for resolve_boundaries."""

    def test_reference_subject_line(self):
        boundaries = resolve_boundaries(
            "Spazio Alfieri • programmazione 25 settembre > 2 ottobre", 2024
        )

        assert boundaries.lower.isoformat() == "2024-09-25T00:00:00+02:00"
        assert boundaries.upper.isoformat() == "2024-10-02T23:59:59+02:00"

    def test_single_month_is_shared(self):
        boundaries = resolve_boundaries("programmazione 3 > 9 ottobre", 2024)

        assert (boundaries.lower.month, boundaries.lower.day) == (10, 3)
        assert (boundaries.upper.month, boundaries.upper.day) == (10, 9)

    def test_year_crossover(self):
        boundaries = resolve_boundaries("programmazione 27 dicembre > 3 gennaio", 2024)

        assert boundaries.lower.year == 2024
        assert boundaries.upper.year == 2025
        assert boundaries.upper.isoformat() == "2025-01-03T23:59:59+01:00"

    def test_month_names_are_case_insensitive(self):
        boundaries = resolve_boundaries("Programmazione 25 Settembre > 2 OTTOBRE", 2024)

        assert boundaries.lower.month == 9
        assert boundaries.upper.month == 10

    def test_tokenizer_ignores_other_text(self):
        tokens = tokenize_subject("Spazio Alfieri • programmazione 25 settembre > 2 ottobre 2024")

        assert tokens == [
            ("day", "25"),
            ("month", "settembre"),
            ("day", "2"),
            ("month", "ottobre"),
        ]

    @pytest.mark.parametrize(
        "subject",
        [
            "programmazione 25 settembre",
            "programmazione 25 > 26 > 27 settembre",
            "programmazione settembre",
            "programmazione della settimana",
        ],
    )
    def test_wrong_day_number_count_fails(self, subject):
        with pytest.raises(SemanticError):
            resolve_boundaries(subject, 2024)

    def test_month_before_any_day_fails(self):
        with pytest.raises(SemanticError, match="Unexpected `month`"):
            resolve_boundaries("settembre 25 > 2 ottobre", 2024)

    def test_missing_month_fails(self):
        with pytest.raises(SemanticError, match="month"):
            resolve_boundaries("programmazione 25 > 2", 2024)

    def test_invalid_calendar_date_fails(self):
        with pytest.raises(SemanticError, match="2024-9-31"):
            resolve_boundaries("programmazione 31 settembre > 2 ottobre", 2024)

    def test_upper_boundary_is_end_of_day(self):
        boundaries = resolve_boundaries("programmazione 25 settembre > 2 ottobre", 2024)

        assert (boundaries.lower.hour, boundaries.lower.minute) == (0, 0)
        assert (
            boundaries.upper.hour,
            boundaries.upper.minute,
            boundaries.upper.second,
        ) == (23, 59, 59)
