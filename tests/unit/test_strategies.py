import hashlib
import re
import uuid

import pytest

from datavault.anonymization import strategies
from datavault.anonymization.models import PIIType
from datavault.anonymization.strategies import (
    GeneralizeConfig,
    HashConfig,
    MaskConfig,
    SynthesizeConfig,
)
from tests.helpers import match_of, run

CARD = "4111111111111111"


class TestMask:
    def test_preserves_length_by_default(self) -> None:
        result = strategies.mask(CARD, match_of(CARD, CARD, PIIType.CREDIT_CARD))
        assert result.replacement == "*" * len(CARD)
        assert not result.is_reversible
        assert result.token_id is None

    def test_fixed_length_when_not_preserved(self) -> None:
        config = MaskConfig(preserve_length=False)
        result = strategies.mask(CARD, match_of(CARD, CARD, PIIType.CREDIT_CARD), config)
        assert result.replacement == "********"

    def test_show_partial(self) -> None:
        config = MaskConfig(show_partial=True, partial_chars=4)
        result = strategies.mask(CARD, match_of(CARD, CARD, PIIType.CREDIT_CARD), config)
        assert result.replacement == "4111********1111"

    def test_show_partial_skipped_for_short_values(self) -> None:
        config = MaskConfig(show_partial=True, partial_chars=4)
        m = match_of("12345678", "12345678", PIIType.ZIP_CODE)
        result = strategies.mask("12345678", m, config)
        assert result.replacement == "********"

    def test_custom_mask_char(self) -> None:
        config = MaskConfig(mask_char="#")
        result = strategies.mask("abc", match_of("abc", "abc", PIIType.PERSON_NAME), config)
        assert result.replacement == "###"

    def test_category_labels_when_enabled(self) -> None:
        text = "a@example.com"
        config = MaskConfig(use_category_labels=True)
        result = strategies.mask(text, match_of(text, text, PIIType.EMAIL), config)
        assert result.replacement == "[EMAIL_REDACTED]"

    def test_configured_label_wins(self) -> None:
        text = "a@example.com"
        config = MaskConfig(labels={PIIType.EMAIL: "<email>"}, use_category_labels=True)
        result = strategies.mask(text, match_of(text, text, PIIType.EMAIL), config)
        assert result.replacement == "<email>"

    def test_rejects_multi_char_mask(self) -> None:
        with pytest.raises(ValueError, match="single character"):
            MaskConfig(mask_char="**")

    def test_label_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            strategies.CATEGORY_LABELS[PIIType.EMAIL] = "x"  # type: ignore[index]


class TestRedact:
    def test_placeholder_uses_type_name(self) -> None:
        text = "555-123-4567"
        result = strategies.redact(text, match_of(text, text, PIIType.PHONE_NUMBER))
        assert result.replacement == "[PHONE_NUMBER_REDACTED]"
        assert not result.is_reversible


class TestHash:
    def test_deterministic_for_same_salt(self) -> None:
        text = "ssn 123-45-6789"
        m = match_of(text, "123-45-6789", PIIType.SSN)
        first = run(strategies.hash_value(text, m, HashConfig(salt="s")))
        second = run(strategies.hash_value(text, m, HashConfig(salt="s")))
        assert first == second

    def test_salt_changes_output(self) -> None:
        text = "123-45-6789"
        m = match_of(text, text, PIIType.SSN)
        assert run(strategies.hash_value(text, m, HashConfig(salt="s"))) != run(
            strategies.hash_value(text, m, HashConfig(salt="t"))
        )

    def test_format_and_digest(self) -> None:
        text = "123-45-6789"
        m = match_of(text, text, PIIType.SSN)
        result = run(strategies.hash_value(text, m, HashConfig(salt="s")))
        expected = hashlib.sha256(b"s123-45-6789").hexdigest()[:16]
        assert result.replacement == f"HASH_{expected}"
        assert not result.is_reversible

    def test_zero_truncate_keeps_full_digest(self) -> None:
        text = "x@example.com"
        config = HashConfig(algorithm="sha512", truncate_length=0)
        result = run(strategies.hash_value(text, match_of(text, text, PIIType.EMAIL), config))
        assert len(result.replacement) == len("HASH_") + 128

    def test_unsupported_algorithm(self) -> None:
        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            HashConfig(algorithm="md5")

    def test_sync_fallback_is_deterministic_and_prefixed(self) -> None:
        text = "123-45-6789"
        m = match_of(text, text, PIIType.SSN)
        first = strategies.hash_value_sync(text, m, HashConfig(salt="s"))
        assert first == strategies.hash_value_sync(text, m, HashConfig(salt="s"))
        assert re.fullmatch(r"HASH_[0-9a-f]{16}", first.replacement)


class TestFallbackHash:
    @pytest.mark.parametrize(
        ("value", "expected"), [("", 0), ("a", 97), ("ab", 3105), ("hello", 99162322)]
    )
    def test_known_values(self, value: str, expected: int) -> None:
        assert strategies.fallback_hash(value) == expected

    def test_never_negative(self) -> None:
        assert all(strategies.fallback_hash(f"value-{i}" * 5) >= 0 for i in range(200))

    @pytest.mark.parametrize(("number", "expected"), [(0, "0"), (35, "z"), (36, "10")])
    def test_base36(self, number: int, expected: str) -> None:
        assert strategies.to_base36(number) == expected


class TestGeneralize:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [(0, "30-34"), (1, "30s"), (2, "Adult"), (9, "Adult"), (None, "Adult")],
    )
    def test_age_hierarchy(self, level: int | None, expected: str) -> None:
        m = match_of("34", "34", PIIType.AGE)
        result = strategies.generalize("34", m, GeneralizeConfig(level))
        assert result.replacement == expected

    def test_minor(self) -> None:
        result = strategies.generalize("12", match_of("12", "12", PIIType.AGE), GeneralizeConfig(2))
        assert result.replacement == "Minor"

    @pytest.mark.parametrize(
        ("level", "expected"), [(0, "192.168.1.*"), (1, "192.168.*.*"), (2, "[IP GENERALIZED]")]
    )
    def test_ip_hierarchy(self, level: int, expected: str) -> None:
        text = "192.168.1.42"
        m = match_of(text, text, PIIType.IP_ADDRESS)
        result = strategies.generalize(text, m, GeneralizeConfig(level))
        assert result.replacement == expected

    def test_zip_prefix(self) -> None:
        m = match_of("94105", "94105", PIIType.ZIP_CODE)
        result = strategies.generalize("94105", m, GeneralizeConfig(0))
        assert result.replacement == "941**"

    @pytest.mark.parametrize(("level", "expected"), [(0, "Year: 1985"), (1, "1980s")])
    def test_date_of_birth(self, level: int, expected: str) -> None:
        text = "03/15/1985"
        m = match_of(text, text, PIIType.DATE_OF_BIRTH)
        result = strategies.generalize(text, m, GeneralizeConfig(level))
        assert result.replacement == expected

    def test_unparseable_value_falls_back(self) -> None:
        m = match_of("old", "old", PIIType.AGE)
        result = strategies.generalize("old", m, GeneralizeConfig(0))
        assert result.replacement == "[AGE GENERALIZED]"

    def test_type_without_hierarchy_falls_back(self) -> None:
        text = "a@example.com"
        result = strategies.generalize(text, match_of(text, text, PIIType.EMAIL))
        assert result.replacement == "[EMAIL GENERALIZED]"


class TestSynthesize:
    def test_consistent_for_same_value_and_seed(self) -> None:
        text = "john.doe@example.com"
        m = match_of(text, text, PIIType.EMAIL)
        config = SynthesizeConfig(seed="seed")
        assert strategies.synthesize(text, m, config) == strategies.synthesize(text, m, config)

    def test_seed_changes_output(self) -> None:
        text = "john.doe@example.com"
        m = match_of(text, text, PIIType.EMAIL)
        assert strategies.synthesize(text, m, SynthesizeConfig(seed="a")) != strategies.synthesize(
            text, m, SynthesizeConfig(seed="b")
        )

    def test_email_shape(self) -> None:
        text = "john.doe@example.com"
        result = strategies.synthesize(text, match_of(text, text, PIIType.EMAIL))
        pattern = r"user_[0-9a-z]+@(example\.com|test\.org|sample\.net)"
        assert re.fullmatch(pattern, result.replacement)
        assert not result.is_reversible

    @pytest.mark.parametrize(
        ("pii_type", "value", "pattern"),
        [
            (PIIType.PHONE_NUMBER, "555-123-4567", r"\(555\) \d{3}-\d{4}"),
            (PIIType.SSN, "123-45-6789", r"\d{3}-\d{2}-\d{4}"),
            (PIIType.CREDIT_CARD, "4111-1111-1111-1111", r"4111-\d{4}-\d{4}-\d{4}"),
            (PIIType.IP_ADDRESS, "8.8.8.8", r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}"),
            (PIIType.DATE_OF_BIRTH, "03/15/1985", r"\d{2}/\d{2}/(19[5-9]\d)"),
            (PIIType.ZIP_CODE, "94105", r"\d{5}"),
            (PIIType.PERSON_NAME, "Dr. Jane Smith", r"[A-Z][a-z]+ [A-Z][a-z]+"),
            (PIIType.STREET_ADDRESS, "123 Main Street", r"\d+ [A-Za-z]+ [A-Za-z]+"),
        ],
    )
    def test_formatted_shapes(self, pii_type: PIIType, value: str, pattern: str) -> None:
        result = strategies.synthesize(value, match_of(value, value, pii_type))
        assert re.fullmatch(pattern, result.replacement)

    def test_unformatted_card(self) -> None:
        value = "4111-1111-1111-1111"
        config = SynthesizeConfig(maintain_format=False)
        result = strategies.synthesize(value, match_of(value, value, PIIType.CREDIT_CARD), config)
        assert re.fullmatch(r"4111\d{12}", result.replacement)

    def test_type_without_generator(self) -> None:
        value = "GB82WEST12345698765432"
        result = strategies.synthesize(value, match_of(value, value, PIIType.IBAN))
        assert re.fullmatch(r"SYNTH_[0-9A-Z]{1,8}", result.replacement)


class TestReversiblePlaceholders:
    def test_tokenize(self) -> None:
        result = strategies.tokenize("secret", match_of("secret", "secret", PIIType.PASSWORD))
        assert result.is_reversible
        assert result.token_id is not None
        uuid.UUID(result.token_id)
        assert result.replacement == "TOKEN_" + result.token_id.replace("-", "")[:12].upper()

    def test_tokens_are_fresh(self) -> None:
        m = match_of("secret", "secret", PIIType.PASSWORD)
        first, second = strategies.tokenize("secret", m), strategies.tokenize("secret", m)
        assert first.token_id != second.token_id

    def test_encrypt(self) -> None:
        result = strategies.encrypt("secret", match_of("secret", "secret", PIIType.PASSWORD))
        assert result.is_reversible
        assert result.replacement.startswith("ENC_")
        assert "secret" not in result.replacement
