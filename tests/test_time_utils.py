"""
Time and funding math helpers.
"""

import pytest

from tests.conftest import MINUTE_47_TIMESTAMP
from utils.math_utils import annualize_funding_rate
from utils.time_utils import seconds_until_next_hour, time_until_next_hour


class TestHourAlignment:

    def test_minute_47_is_13_minutes_from_the_hour(self):
        assert seconds_until_next_hour(MINUTE_47_TIMESTAMP) == 780
        assert time_until_next_hour(MINUTE_47_TIMESTAMP) == (13, 0)

    def test_top_of_hour_waits_full_hour(self):
        top = MINUTE_47_TIMESTAMP - 47 * 60
        assert seconds_until_next_hour(top) == 3600
        assert time_until_next_hour(top) == (60, 0)

    def test_fractional_seconds(self):
        assert time_until_next_hour(MINUTE_47_TIMESTAMP + 30.5) == (12, 29)


class TestAnnualize:

    @pytest.mark.parametrize("rate,apy", [
        (0.0001, 87.6),
        (0.00005, 43.8),
        (-0.0000125, -10.95),
        (0.0, 0.0),
    ])
    def test_apy(self, rate, apy):
        assert annualize_funding_rate(rate) == pytest.approx(apy)
