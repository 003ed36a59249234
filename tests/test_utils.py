import re

import pytest

from utils import (
    clean_segment,
    generate_entity_id,
    generate_initial_password,
    is_valid_nic,
    is_valid_plate,
    normalize_email,
    normalize_phone,
    to_international,
)


@pytest.mark.parametrize("nic", ["199512345678", "952345678V", "952345678v", "952345678X", "952345678x"])
def test_valid_nics(nic):
    assert is_valid_nic(nic)


@pytest.mark.parametrize("nic", ["", "95234567V", "952345678Y", "19951234567", "1995123456789", "95234567 8V"])
def test_invalid_nics(nic):
    assert not is_valid_nic(nic)


def test_phone_normalization_and_internationalization():
    assert normalize_phone("071-234-5678") == "0712345678"
    assert normalize_phone("(071) 234 5678") == "0712345678"
    assert normalize_phone("71-234-5678") is None
    assert normalize_phone("") is None
    assert to_international("0712345678", "94") == "+94712345678"


def test_plate_pattern_uses_region():
    assert is_valid_plate("WP AB-1234", "WP")
    assert is_valid_plate("WP CAB-1234", "WP")
    assert not is_valid_plate("WP AB-1234", "SP")
    assert is_valid_plate("SP AB-1234", "SP")


def test_email_normalization():
    assert normalize_email("Driver@VateLanka.lk") == "driver@vatelanka.lk"
    assert normalize_email("driver@") is None
    assert normalize_email("driver.vatelanka.lk") is None
    assert normalize_email("Driver <driver@vatelanka.lk>") is None


@pytest.mark.parametrize("raw, expected", [(" Ward-01 ", "Ward-01"), ("", None), ("   ", None), ("a/b", None), ("..", None)])
def test_clean_segment(raw, expected):
    assert clean_segment(raw) == expected


def test_generated_ids_carry_kind_prefix():
    assert re.match(r"^SUP[0-9A-Z]{6}$", generate_entity_id("SUP"))
    assert re.match(r"^TRUCK[0-9A-Z]{6}$", generate_entity_id("TRUCK"))
    assert generate_entity_id("SUP") != generate_entity_id("SUP")


def test_initial_password_uses_nic_tail():
    password = generate_initial_password("199512345678")
    assert password.startswith("5678")
    assert re.match(r"^5678[0-9a-z]{4}$", password)
