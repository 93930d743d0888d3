"""Checksum and plausibility validators used by the pattern detector.

Each validator takes the matched substring and returns True when the match
should be kept.
"""

import ipaddress
import math
import re
from collections import Counter

_NON_DIGIT_RE = re.compile(r"\D")

DISPOSABLE_EMAIL_DOMAINS = frozenset(
    {
        "tempmail.com",
        "throwaway.email",
        "guerrillamail.com",
        "mailinator.com",
        "10minutemail.com",
        "yopmail.com",
    }
)

API_KEY_MIN_ENTROPY = 3.5


def digits_of(value: str) -> str:
    return _NON_DIGIT_RE.sub("", value)


def is_disposable_email(email: str) -> bool:
    domain = email.rpartition("@")[2].lower()
    return any(
        domain == d or domain.endswith(f".{d}") for d in DISPOSABLE_EMAIL_DOMAINS
    )


def is_plausible_email(email: str) -> bool:
    return not is_disposable_email(email)


def is_plausible_ssn(ssn: str) -> bool:
    """Reject SSNs made of a single repeated digit (111-11-1111 etc.)."""
    digits = digits_of(ssn)
    return len(digits) == 9 and len(set(digits)) > 1


def luhn_ok(number: str) -> bool:
    """Validate a card number with the Luhn checksum (13-19 digits)."""
    digits = [int(c) for c in digits_of(number)]
    if not 13 <= len(digits) <= 19:
        return False

    checksum = 0
    for position, digit in enumerate(reversed(digits)):
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        checksum += digit
    return checksum % 10 == 0


def is_plausible_phone(phone: str) -> bool:
    return 10 <= len(digits_of(phone)) <= 15


def is_public_ip(ip: str) -> bool:
    """Keep only addresses that can identify a host on the public internet."""
    try:
        address = ipaddress.IPv4Address(ip)
    except ValueError:
        return False
    return not (address.is_private or address.is_loopback or address.is_unspecified)


def shannon_entropy(value: str) -> float:
    if not value:
        return 0.0
    length = len(value)
    return -sum(
        (count / length) * math.log2(count / length)
        for count in Counter(value).values()
    )


def is_high_entropy_key(key: str) -> bool:
    return shannon_entropy(key) > API_KEY_MIN_ENTROPY


def iban_ok(iban: str) -> bool:
    """ISO 13616 check: length 15-34 and mod-97 remainder of 1."""
    compact = iban.replace(" ", "").upper()
    if not 15 <= len(compact) <= 34 or not compact.isalnum():
        return False
    rearranged = compact[4:] + compact[:4]
    numeric = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(numeric) % 97 == 1
