"""Phone number utilities for consistent handling across the application."""

import re

MEXICO_COUNTRY_CODE = "52"
MEXICO_MOBILE_PREFIX = "1"
CANONICAL_MEXICO_LENGTH = 13  # 52 + 1 + 10 national digits
DEDUP_SUFFIX_LENGTH = 10

_PROVIDER_SUFFIX = re.compile(r"@[^@]*$")


def digits_only(phone: str | None) -> str:
    """Strip everything that is not a digit."""
    if not phone:
        return ""
    return re.sub(r"\D", "", phone)


def extract_sender_phone(address: str | None) -> str:
    """Turn a provider chat address into bare digits.

    Examples:
        5215512345678@c.us            → 5215512345678
        5215512345678@s.whatsapp.net  → 5215512345678
        +52 55 1234 5678              → 525512345678

    Returns:
        Digits, or an empty string when nothing usable is left
    """
    if not address or not isinstance(address, str):
        return ""
    return digits_only(_PROVIDER_SUFFIX.sub("", address.strip()))


def normalize_phone(phone: str | None) -> str:
    """Normalize a phone to the canonical digit string used as dedup key.

    Mexican mobile numbers reach us both with and without the legacy
    mobile "1" after the country code; the canonical form always carries
    it (52 + 1 + 10 digits):
        +52 55 1234 5678      → 5215512345678
        +52 1 55 1234 5678    → 5215512345678
        5215512345678@c.us    → 5215512345678

    Anything else (other countries, national-only numbers, short codes)
    passes through as digits. Idempotent: normalizing a canonical value
    returns it unchanged.
    """
    digits = extract_sender_phone(phone)

    if len(digits) < DEDUP_SUFFIX_LENGTH or not digits.startswith(MEXICO_COUNTRY_CODE):
        return digits

    national = digits[len(MEXICO_COUNTRY_CODE):]
    prefix = MEXICO_COUNTRY_CODE + MEXICO_MOBILE_PREFIX

    if len(digits) == CANONICAL_MEXICO_LENGTH:
        if national.startswith(MEXICO_MOBILE_PREFIX):
            return digits
        return prefix + national[1:]

    if len(digits) == CANONICAL_MEXICO_LENGTH - 1:
        return prefix + national

    if len(digits) > CANONICAL_MEXICO_LENGTH:
        head = digits[:CANONICAL_MEXICO_LENGTH]
        if head.startswith(prefix):
            return head
        return prefix + head[len(MEXICO_COUNTRY_CODE):CANONICAL_MEXICO_LENGTH - 1]

    return digits


def phone_suffix(phone: str | None, length: int = DEDUP_SUFFIX_LENGTH) -> str:
    """Last ``length`` digits of the normalized phone.

    Legacy rows are inconsistent about the country code, so the national
    part is the most stable key we have.
    """
    return normalize_phone(phone)[-length:]


def phones_match(a: str | None, b: str | None) -> bool:
    """Fuzzy equality used by merges and the lead race path.

    Exact canonical equality first, then equality of the last 10 digits.
    Symmetric in its arguments.
    """
    left = normalize_phone(a)
    right = normalize_phone(b)
    if not left or not right:
        return False
    if left == right:
        return True
    return left[-DEDUP_SUFFIX_LENGTH:] == right[-DEDUP_SUFFIX_LENGTH:]


def format_display_phone(phone: str | None) -> str:
    """Format a Mexican number for display: +52 449 169 86 35."""
    digits = normalize_phone(phone)
    if not digits:
        return phone or ""
    if len(digits) < DEDUP_SUFFIX_LENGTH:
        return f"+{MEXICO_COUNTRY_CODE} {digits}"
    last10 = digits[-DEDUP_SUFFIX_LENGTH:]
    return f"+{MEXICO_COUNTRY_CODE} {last10[:3]} {last10[3:6]} {last10[6:8]} {last10[8:]}"
