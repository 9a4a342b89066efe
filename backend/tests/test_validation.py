"""
Pure helper tests: format validators, money conversion, slugs and masking.
"""

import pytest

from farmconnect.errors import ServiceError
from farmconnect.money import from_cents, to_cents
from farmconnect.validation import (
    generate_slug,
    mask_id_number,
    mask_phone_number,
    password_strength,
    positive_int,
    validate_email,
    validate_id_format,
    validate_mobile_money_name,
    validate_password,
    validate_phone_number,
)


@pytest.mark.parametrize(
    "email,expected",
    [
        ("ama@example.com", True),
        ("a.b+c@farm.co.gh", True),
        ("no-at-sign.com", False),
        ("two@@example.com", False),
        ("spaces in@example.com", False),
        (None, False),
    ],
)
def test_validate_email(email, expected):
    assert validate_email(email) is expected


@pytest.mark.parametrize(
    "password,expected",
    [
        ("Password123", True),
        ("Abcdefg1@", True),
        ("password123", False),
        ("PASSWORD123", False),
        ("Passwordxx", False),
        ("Pass1", False),
    ],
)
def test_validate_password(password, expected):
    assert validate_password(password) is expected


def test_password_strength():
    assert password_strength("") == 0
    assert password_strength("abc") == 1
    assert password_strength("LongerPassw0rd#") == 5
    assert password_strength("LongerPassw0rd@") == 6


@pytest.mark.parametrize(
    "phone,expected",
    [
        ("0241234567", True),
        (" 0551234567 ", True),
        ("241234567", False),
        ("+233241234567", False),
        ("02412345678", False),
    ],
)
def test_validate_phone_number(phone, expected):
    assert validate_phone_number(phone) is expected


def test_validate_id_format():
    assert validate_id_format("GHA-1234567-8")
    assert not validate_id_format("GHA-123456-8")
    assert not validate_id_format("gha-1234567-8")
    assert validate_id_format("A123456789", id_type="passport")
    assert not validate_id_format("A123", id_type="passport")


def test_validate_mobile_money_name():
    assert validate_mobile_money_name("AMA OWUSU ENTERPRISE", "Ama Owusu")
    assert validate_mobile_money_name("K. Owusu", "Ama Owusu")
    assert not validate_mobile_money_name("Kofi Boateng", "Ama Owusu")
    # two-letter name parts are ignored
    assert not validate_mobile_money_name("Jo Mensah", "Jo Ab")
    assert not validate_mobile_money_name("", "Ama Owusu")


def test_masking():
    assert mask_phone_number("0241234567") == "******4567"
    assert mask_phone_number("123") == "123"
    assert mask_id_number("GHA-1234567-8") == "GHA-*********"


def test_generate_slug():
    assert generate_slug("Fresh Garden Eggs") == "fresh-garden-eggs"
    assert generate_slug("  Kontomire & Okra!! ") == "kontomire-okra"
    assert generate_slug("Café Cocoa") == "cafe-cocoa"
    assert generate_slug("!!!") == ""


def test_positive_int():
    assert positive_int(3) == 3
    assert positive_int("7") == 7
    for bad in (0, -1, 1.5, True, "2.5", None):
        with pytest.raises(ServiceError) as exc:
            positive_int(bad)
        assert exc.value.code == "INVALID_QUANTITY"


class TestMoney:

    @pytest.mark.parametrize(
        "value,cents",
        [(8.5, 850), ("8.50", 850), (12, 1200), ("0.005", 1), (0.1 + 0.2, 30), ("  3.99 ", 399)],
    )
    def test_to_cents(self, value, cents):
        assert to_cents(value) == cents

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "-1", 10_000_000])
    def test_to_cents_rejects(self, value):
        with pytest.raises(ServiceError) as exc:
            to_cents(value, field="price")
        assert exc.value.code == "INVALID_AMOUNT"
        assert exc.value.details == {"field": "price"}

    def test_from_cents(self):
        assert from_cents(None) is None
        assert from_cents(0) == 0.0
        assert from_cents(1250) == 12.5
        assert from_cents(2201) == 22.01
