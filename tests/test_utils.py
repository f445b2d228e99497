from decimal import Decimal

import pytest

from ehutano.core.config import _parse_rates, _split_csv
from ehutano.utils.money import fmt_money, parse_decimal, round_money
from ehutano.utils.text import clean_medicine_name, is_blank, smart_title


def test_round_money_half_up():
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert round_money(Decimal("2.344")) == Decimal("2.34")
    assert str(round_money(Decimal("5"))) == "5.00"


def test_parse_decimal():
    assert parse_decimal(" 1,250.50 ") == Decimal("1250.50")
    assert parse_decimal("") is None
    assert parse_decimal(None) is None
    with pytest.raises(ValueError):
        parse_decimal("ten")
    with pytest.raises(ValueError):
        parse_decimal("NaN")


def test_fmt_money():
    assert fmt_money(Decimal("1234.5"), "USD") == "USD 1,234.50"
    assert fmt_money(None, "USD") == ""


def test_clean_medicine_name():
    assert clean_medicine_name("PANADO 500MG - 2004/7.4.2/3876") == "PANADO 500MG"
    assert clean_medicine_name("Plain Name") == "Plain Name"


def test_smart_title():
    assert smart_title("PARACETAMOL 500 MG TABLETS") == "Paracetamol 500 mg Tablets"
    assert smart_title("vitamin b12 1000MCG") == "Vitamin B12 1000mcg"


def test_is_blank():
    assert is_blank("  ")
    assert is_blank(None)
    assert not is_blank("x")


def test_settings_parsers():
    assert _split_csv(" a, ,b ") == ["a", "b"]
    assert _parse_rates("zwg=26.5, ZAR=18.4,bad") == {
        "ZWG": Decimal("26.5"), "ZAR": Decimal("18.4")}
