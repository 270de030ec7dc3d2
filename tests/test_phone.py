"""Tests for phone canonicalization and fuzzy matching."""

import pytest

from taller_inbox.core.phone import (
    extract_sender_phone,
    format_display_phone,
    normalize_phone,
    phone_suffix,
    phones_match,
)

SAMPLES = [
    "+52 55 1234 5678",
    "+52 1 55 1234 5678",
    "5215512345678@c.us",
    "5215512345678@s.whatsapp.net",
    "525512345678",
    "5245512345678",
    "52155123456789",
    "52455123456789",
    "52551234567",
    "+1 (415) 555-0100",
    "4491698635",
    "12345",
    "",
    "@c.us",
    "sin número",
]


@pytest.mark.parametrize(
    "address,expected",
    [
        ("5215512345678@c.us", "5215512345678"),
        ("5215512345678@s.whatsapp.net", "5215512345678"),
        ("+52 55 1234 5678", "525512345678"),
        ("@c.us", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_extract_sender_phone(address, expected):
    assert extract_sender_phone(address) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("+52 55 1234 5678", "5215512345678"),
        ("+52 1 55 1234 5678", "5215512345678"),
        ("5215512345678@c.us", "5215512345678"),
        ("525512345678", "5215512345678"),
        ("5245512345678", "5215512345678"),
        ("52155123456789", "5215512345678"),
        ("+1 (415) 555-0100", "14155550100"),
        ("4491698635", "4491698635"),
        ("12345", "12345"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", SAMPLES)
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


def test_normalize_phone_empty_inputs():
    assert normalize_phone(None) == ""
    assert normalize_phone("") == ""
    assert normalize_phone("---") == ""


@pytest.mark.parametrize(
    "a,b",
    [
        ("5215512345678", "+52 1 55 1234 5678"),
        ("525512345678", "5215512345678@c.us"),
        ("5512345678", "+52 55 1234 5678"),
    ],
)
def test_phones_match_is_symmetric(a, b):
    assert phones_match(a, b)
    assert phones_match(b, a)


def test_phones_match_rejects_different_numbers_and_empty():
    assert not phones_match("5215512345678", "5215587654321")
    assert not phones_match("", "5215512345678")
    assert not phones_match(None, None)


def test_phone_suffix_uses_last_ten_digits():
    assert phone_suffix("+52 1 55 1234 5678") == "5512345678"
    assert phone_suffix("525512345678") == phone_suffix("5215512345678")


def test_format_display_phone():
    assert format_display_phone("5214491698635") == "+52 449 169 86 35"
    assert format_display_phone("4491698635") == "+52 449 169 86 35"
    assert format_display_phone("12345") == "+52 12345"
