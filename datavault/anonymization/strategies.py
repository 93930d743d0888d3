"""Strategy library: one function per anonymization strategy.

Every function takes the original text, the match to replace and an optional
strategy config, and returns a StrategyResult. Lookup tables (category labels,
generalization hierarchies, synthetic generators) are immutable and built once
at import time.
"""

import asyncio
import hashlib
import re
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from datavault.anonymization.models import PIIMatch, PIIType, StrategyResult

# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

SUPPORTED_HASH_ALGORITHMS = frozenset({"sha256", "sha512"})


@dataclass(frozen=True)
class MaskConfig:
    mask_char: str = "*"
    preserve_length: bool = True
    show_partial: bool = False
    partial_chars: int = 4
    labels: Mapping[PIIType, str] = field(default_factory=dict)
    use_category_labels: bool = False

    def __post_init__(self) -> None:
        if len(self.mask_char) != 1:
            raise ValueError(f"mask_char must be a single character, got {self.mask_char!r}")
        if self.partial_chars < 0:
            raise ValueError("partial_chars must not be negative")


@dataclass(frozen=True)
class HashConfig:
    salt: str = ""
    algorithm: str = "sha256"
    truncate_length: int = 16  # 0 keeps the full digest

    def __post_init__(self) -> None:
        if self.algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(
                f"Unsupported hash algorithm '{self.algorithm}'. "
                f"Choose from: {sorted(SUPPORTED_HASH_ALGORITHMS)}"
            )


@dataclass(frozen=True)
class GeneralizeConfig:
    level: int | None = 1  # None selects the coarsest level


@dataclass(frozen=True)
class SynthesizeConfig:
    maintain_format: bool = True
    seed: str = ""


@dataclass(frozen=True)
class StrategyConfig:
    """Per-strategy settings handed to the dispatcher."""

    mask: MaskConfig = field(default_factory=MaskConfig)
    hash: HashConfig = field(default_factory=HashConfig)
    generalize: GeneralizeConfig = field(default_factory=GeneralizeConfig)
    synthesize: SynthesizeConfig = field(default_factory=SynthesizeConfig)


# ----------------------------------------------------------------------
# Non-cryptographic fallback hash
# ----------------------------------------------------------------------


def fallback_hash(value: str) -> int:
    """32-bit multiplicative string hash (h * 31 + c), returned as a non-negative int.

    NOT cryptographically secure and collision-prone. Used only to derive
    synthetic values and by the synchronous hash fallback.
    """
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


# ----------------------------------------------------------------------
# Mask
# ----------------------------------------------------------------------

CATEGORY_LABELS: Mapping[PIIType, str] = MappingProxyType(
    {
        PIIType.EMAIL: "[EMAIL_REDACTED]",
        PIIType.PHONE_NUMBER: "[PHONE_REDACTED]",
        PIIType.SSN: "[SSN_REDACTED]",
        PIIType.CREDIT_CARD: "[CARD_REDACTED]",
        PIIType.PERSON_NAME: "[NAME_REDACTED]",
        PIIType.IP_ADDRESS: "[IP_REDACTED]",
        PIIType.API_KEY: "[KEY_REDACTED]",
        PIIType.FULL_ADDRESS: "[ADDRESS_REDACTED]",
        PIIType.STREET_ADDRESS: "[ADDRESS_REDACTED]",
        PIIType.DATE_OF_BIRTH: "[DOB_REDACTED]",
        PIIType.PASSPORT_NUMBER: "[PASSPORT_REDACTED]",
        PIIType.DRIVERS_LICENSE: "[LICENSE_REDACTED]",
        PIIType.MEDICAL_RECORD_NUMBER: "[MRN_REDACTED]",
        PIIType.HEALTH_INSURANCE_NUMBER: "[INSURANCE_REDACTED]",
        PIIType.BANK_ACCOUNT: "[BANK_REDACTED]",
        PIIType.IBAN: "[IBAN_REDACTED]",
        PIIType.PASSWORD: "[PASSWORD_REDACTED]",
        PIIType.AUTH_TOKEN: "[TOKEN_REDACTED]",
        PIIType.PRIVATE_KEY: "[KEY_REDACTED]",
        PIIType.SECRET_KEY: "[SECRET_REDACTED]",
    }
)

_UNPRESERVED_MASK_LENGTH = 8


def mask(text: str, match: PIIMatch, config: MaskConfig | None = None) -> StrategyResult:
    """Replace the span with the mask character, or with a configured label."""
    config = config or MaskConfig()

    labels = dict(CATEGORY_LABELS) if config.use_category_labels else {}
    labels.update(config.labels)
    label = labels.get(match.pii_type)
    if label is not None:
        return StrategyResult(replacement=label)

    value = match.value_in(text)
    keep = config.partial_chars
    if config.show_partial and len(value) > keep * 2:
        middle = config.mask_char * (len(value) - keep * 2)
        replacement = f"{value[:keep]}{middle}{value[len(value) - keep:]}"
    elif config.preserve_length:
        replacement = config.mask_char * len(value)
    else:
        replacement = config.mask_char * _UNPRESERVED_MASK_LENGTH

    return StrategyResult(replacement=replacement)


# ----------------------------------------------------------------------
# Redact
# ----------------------------------------------------------------------


def redact(text: str, match: PIIMatch, config: object = None) -> StrategyResult:
    """Replace the span with ``[<TYPE>_REDACTED]``."""
    _ = text, config
    return StrategyResult(replacement=f"[{match.pii_type.label}_REDACTED]")


# ----------------------------------------------------------------------
# Hash
# ----------------------------------------------------------------------

HASH_PREFIX = "HASH_"


def _hex_digest(algorithm: str, data: bytes) -> str:
    return hashlib.new(algorithm, data).hexdigest()


def _truncate(digest: str, length: int) -> str:
    return digest[:length] if length > 0 else digest


async def hash_value(
    text: str, match: PIIMatch, config: HashConfig | None = None
) -> StrategyResult:
    """Salted cryptographic digest of the matched value, hex-encoded and prefixed.

    The digest is computed off the event loop; identical value and salt always
    produce the same replacement.
    """
    config = config or HashConfig()
    data = f"{config.salt}{match.value_in(text)}".encode("utf-8")
    digest = await asyncio.to_thread(_hex_digest, config.algorithm, data)
    return StrategyResult(replacement=f"{HASH_PREFIX}{_truncate(digest, config.truncate_length)}")


def hash_value_sync(
    text: str, match: PIIMatch, config: HashConfig | None = None
) -> StrategyResult:
    """Synchronous hash fallback built on the NON-cryptographic fallback_hash."""
    config = config or HashConfig()
    value = f"{config.salt}{match.value_in(text)}"
    digest = format(fallback_hash(value), "x").zfill(16)
    return StrategyResult(replacement=f"{HASH_PREFIX}{_truncate(digest, config.truncate_length)}")


# ----------------------------------------------------------------------
# Generalize
# ----------------------------------------------------------------------

Transform = Callable[[str], "str | None"]

_LEADING_INT_RE = re.compile(r"\s*(\d+)")
_YEAR_RE = re.compile(r"\d{4}")


def _leading_int(value: str) -> int | None:
    found = _LEADING_INT_RE.match(value)
    return int(found.group(1)) if found else None


def _age_bucket(value: str) -> str | None:
    age = _leading_int(value)
    if age is None:
        return None
    lower = age // 5 * 5
    return f"{lower}-{lower + 4}"


def _age_decade(value: str) -> str | None:
    age = _leading_int(value)
    return None if age is None else f"{age // 10 * 10}s"


def _age_adulthood(value: str) -> str | None:
    age = _leading_int(value)
    if age is None:
        return None
    return "Minor" if age < 18 else "Adult"


def _date_year(value: str) -> str | None:
    found = _YEAR_RE.search(value)
    return f"Year: {found.group(0)}" if found else None


def _date_decade(value: str) -> str | None:
    found = _YEAR_RE.search(value)
    return f"{int(found.group(0)) // 10 * 10}s" if found else None


def _ip_octets(value: str, keep: int) -> str | None:
    parts = value.split(".")
    if len(parts) != 4:
        return None
    return ".".join(parts[:keep] + ["*"] * (4 - keep))


def _constant(label: str) -> Transform:
    return lambda _value: label


GENERALIZATION_HIERARCHIES: Mapping[PIIType, tuple[Transform, ...]] = MappingProxyType(
    {
        PIIType.AGE: (_age_bucket, _age_decade, _age_adulthood),
        PIIType.ZIP_CODE: (
            lambda z: f"{z[:3]}**" if len(z) >= 3 else None,
            lambda z: f"{z[:2]}***" if len(z) >= 2 else None,
            _constant("USA"),
        ),
        PIIType.DATE_OF_BIRTH: (_date_year, _date_decade, _constant("[DATE GENERALIZED]")),
        PIIType.CITY: (_constant("[CITY]"), _constant("[REGION]"), _constant("[LOCATION]")),
        PIIType.STATE: (_constant("[STATE]"), _constant("[REGION]")),
        PIIType.IP_ADDRESS: (
            lambda ip: _ip_octets(ip, 3),
            lambda ip: _ip_octets(ip, 2),
            _constant("[IP GENERALIZED]"),
        ),
    }
)


def _generalized_placeholder(pii_type: PIIType) -> str:
    return f"[{pii_type.label} GENERALIZED]"


def generalize(
    text: str, match: PIIMatch, config: GeneralizeConfig | None = None
) -> StrategyResult:
    """Apply the requested level of the type's hierarchy.

    Levels past the end of the hierarchy use its coarsest level. Types without a
    hierarchy, and values the transform cannot parse, get a generic placeholder.
    """
    config = config or GeneralizeConfig()
    hierarchy = GENERALIZATION_HIERARCHIES.get(match.pii_type)
    if not hierarchy:
        return StrategyResult(replacement=_generalized_placeholder(match.pii_type))

    coarsest = len(hierarchy) - 1
    level = coarsest if config.level is None else min(max(config.level, 0), coarsest)
    generalized = hierarchy[level](match.value_in(text))
    if generalized is None:
        return StrategyResult(replacement=_generalized_placeholder(match.pii_type))
    return StrategyResult(replacement=generalized)


# ----------------------------------------------------------------------
# Synthesize
# ----------------------------------------------------------------------

_EMAIL_DOMAINS = ("example.com", "test.org", "sample.net")
_FIRST_NAMES = ("John", "Jane", "Alex", "Sam", "Chris", "Pat", "Morgan", "Taylor")
_LAST_NAMES = ("Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis")
_HOUSE_NUMBERS = (123, 456, 789, 100, 200, 300, 500)
_STREETS = ("Main St", "Oak Ave", "Elm Blvd", "Park Ln", "First St", "Second Ave")


def _synthetic_email(h: int, config: SynthesizeConfig) -> str:
    return f"user_{to_base36(h)}@{_EMAIL_DOMAINS[h % len(_EMAIL_DOMAINS)]}"


def _synthetic_phone(h: int, config: SynthesizeConfig) -> str:
    exchange = h % 900 + 100
    subscriber = h % 9000 + 1000
    if config.maintain_format:
        return f"(555) {exchange}-{subscriber}"
    return f"555{exchange}{subscriber}"


def _synthetic_name(h: int, config: SynthesizeConfig) -> str:
    first = _FIRST_NAMES[h % len(_FIRST_NAMES)]
    last = _LAST_NAMES[(h >> 8) % len(_LAST_NAMES)]
    return f"{first} {last}"


def _synthetic_card(h: int, config: SynthesizeConfig) -> str:
    middle = str(h).zfill(12)[:12]
    if config.maintain_format:
        return f"4111-{middle[:4]}-{middle[4:8]}-{middle[8:]}"
    return f"4111{middle}"


def _synthetic_ssn(h: int, config: SynthesizeConfig) -> str:
    area = f"{h % 899 + 100:03d}"
    group = f"{(h >> 10) % 99 + 1:02d}"
    serial = f"{(h >> 17) % 9999 + 1:04d}"
    if config.maintain_format:
        return f"{area}-{group}-{serial}"
    return f"{area}{group}{serial}"


def _synthetic_ip(h: int, config: SynthesizeConfig) -> str:
    return f"{h % 223 + 1}.{(h >> 8) % 256}.{(h >> 16) % 256}.{(h >> 24) % 256}"


def _synthetic_date(h: int, config: SynthesizeConfig) -> str:
    year = 1950 + h % 50
    month = (h >> 8) % 12 + 1
    day = (h >> 16) % 28 + 1
    if config.maintain_format:
        return f"{month:02d}/{day:02d}/{year}"
    return f"{year}-{month:02d}-{day:02d}"


def _synthetic_zip(h: int, config: SynthesizeConfig) -> str:
    return str(10000 + h % 90000)


def _synthetic_street(h: int, config: SynthesizeConfig) -> str:
    number = _HOUSE_NUMBERS[h % len(_HOUSE_NUMBERS)]
    street = _STREETS[(h >> 8) % len(_STREETS)]
    return f"{number} {street}"


SyntheticGenerator = Callable[[int, SynthesizeConfig], str]

SYNTHETIC_GENERATORS: Mapping[PIIType, SyntheticGenerator] = MappingProxyType(
    {
        PIIType.EMAIL: _synthetic_email,
        PIIType.PHONE_NUMBER: _synthetic_phone,
        PIIType.PERSON_NAME: _synthetic_name,
        PIIType.CREDIT_CARD: _synthetic_card,
        PIIType.SSN: _synthetic_ssn,
        PIIType.IP_ADDRESS: _synthetic_ip,
        PIIType.DATE_OF_BIRTH: _synthetic_date,
        PIIType.ZIP_CODE: _synthetic_zip,
        PIIType.STREET_ADDRESS: _synthetic_street,
    }
)


def synthesize(
    text: str, match: PIIMatch, config: SynthesizeConfig | None = None
) -> StrategyResult:
    """Derive a same-shaped synthetic value from the original and the seed.

    Same value and seed always give the same output, which keeps pseudonyms
    consistent across fields and requests.
    """
    config = config or SynthesizeConfig()
    h = fallback_hash(match.value_in(text) + config.seed)
    generator = SYNTHETIC_GENERATORS.get(match.pii_type)
    if generator is None:
        return StrategyResult(replacement=f"SYNTH_{to_base36(h)[:8].upper()}")
    return StrategyResult(replacement=generator(h, config))


# ----------------------------------------------------------------------
# Tokenize / encrypt placeholders
# ----------------------------------------------------------------------


def _reversible_placeholder(prefix: str) -> StrategyResult:
    token_id = str(uuid.uuid4())
    return StrategyResult(
        replacement=f"{prefix}{token_id.replace('-', '')[:12].upper()}",
        is_reversible=True,
        token_id=token_id,
    )


def tokenize(text: str, match: PIIMatch, config: object = None) -> StrategyResult:
    """Opaque placeholder bound to a fresh token id; no vault stores the original."""
    _ = text, match, config
    return _reversible_placeholder("TOKEN_")


def encrypt(text: str, match: PIIMatch, config: object = None) -> StrategyResult:
    """Opaque placeholder marked reversible; key-based encryption happens elsewhere."""
    _ = text, match, config
    return _reversible_placeholder("ENC_")
