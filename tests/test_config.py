from decimal import Decimal

import pytest

from config import Config, _money


def test_default_fee_is_parsed_once():
    assert isinstance(Config.DEFAULT_MONTHLY_FEE, Decimal)
    assert _money(None, "1000") == Decimal("1000")
    assert _money(" 1250.50 ", "1000") == Decimal("1250.50")


@pytest.mark.parametrize("raw", ["abc", "-5", "NaN", "   "])
def test_bad_default_fee_fails_at_startup(raw):
    with pytest.raises(ValueError):
        _money(raw, "1000")
