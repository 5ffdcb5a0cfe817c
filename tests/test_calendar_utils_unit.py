"""Unit tests for Italian calendar helpers."""

from datetime import timedelta

import pytest

from alfieri_bot.calendar_utils import ROME, make_date, month_name_to_number
from alfieri_bot.errors import SemanticError


class TestCalendarUtilsUnit:
    """Unit tests for month lookup and date construction."""

    @pytest.mark.parametrize(
        "name, expected",
        [("gennaio", 1), ("Settembre", 9), (" OTTOBRE ", 10), ("dicembre", 12)],
    )
    def test_month_names(self, name, expected):
        assert month_name_to_number(name) == expected

    def test_invalid_month(self):
        with pytest.raises(SemanticError, match="Encountered invalid month"):
            month_name_to_number("september")

    def test_make_date_uses_rome_offset(self):
        summer = make_date(2024, 9, 25, 17, 0)
        winter = make_date(2024, 12, 25, 17, 0)

        assert summer.tzinfo is ROME
        assert summer.utcoffset() == timedelta(hours=2)
        assert winter.utcoffset() == timedelta(hours=1)

    def test_impossible_day(self):
        with pytest.raises(SemanticError, match="y-m-d = 2024-9-31"):
            make_date(2024, 9, 31)

    def test_leap_day(self):
        assert make_date(2024, 2, 29).day == 29
        with pytest.raises(SemanticError):
            make_date(2023, 2, 29)

    def test_skipped_dst_time(self):
        with pytest.raises(SemanticError, match="does not exist"):
            make_date(2024, 3, 31, 2, 30)
