"""Deterministic pattern-based PII detector.

Processing flow:
1. Run every recognizer (regex + optional validator) over the full text.
2. Score each hit from the recognizer's base confidence, adjusted by keywords
   found in a window of characters around the match.
3. If a sensitive-word dictionary is configured, transliterate the text to
   Latin-ASCII-lowercase via ICU, find whole-word dictionary hits, and map them
   back to positions in the original text.
4. Return all hits ordered by position. Overlapping hits are kept; resolving
   them is the caller's decision.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import ClassVar

import icu  # type: ignore[import-untyped]

from datavault.anonymization import validators
from datavault.anonymization.base import BaseDetector
from datavault.anonymization.models import PIIMatch, PIIType
from datavault.logging.logger import Log


@dataclass(frozen=True)
class DetectionRule:
    """One recognizer: a pattern, its base confidence and how to validate it."""

    pii_type: PIIType
    pattern: re.Pattern[str]
    base_confidence: float
    context_validation: bool = False
    validator: Callable[[str], bool] | None = None
    context_keywords: tuple[str, ...] = ()
    group: int = 0


DEFAULT_RULES: tuple[DetectionRule, ...] = (
    DetectionRule(
        PIIType.EMAIL,
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", re.IGNORECASE),
        0.95,
        validator=validators.is_plausible_email,
    ),
    DetectionRule(
        PIIType.SSN,
        re.compile(r"\b(?!000|666|9\d{2})([0-8]\d{2}|7[0-6]\d)-(?!00)\d{2}-(?!0000)\d{4}\b"),
        0.98,
        context_validation=True,
        validator=validators.is_plausible_ssn,
        context_keywords=("ssn", "social security", "social"),
    ),
    DetectionRule(
        PIIType.CREDIT_CARD,
        re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"),
        0.97,
        context_validation=True,
        validator=validators.luhn_ok,
        context_keywords=("card", "credit", "debit", "visa", "mastercard", "amex"),
    ),
    DetectionRule(
        PIIType.PHONE_NUMBER,
        re.compile(r"(?:\+\d{1,3}[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)\d{3}[-.\s]?\d{4}\b"),
        0.90,
        context_validation=True,
        validator=validators.is_plausible_phone,
        context_keywords=("phone", "call", "mobile", "telephone", "tel"),
    ),
    DetectionRule(
        PIIType.IP_ADDRESS,
        re.compile(
            r"\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
            r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b"
        ),
        0.92,
        validator=validators.is_public_ip,
    ),
    DetectionRule(
        PIIType.IPV6_ADDRESS,
        re.compile(r"\b(?:[0-9a-f]{1,4}:){7}[0-9a-f]{1,4}\b", re.IGNORECASE),
        0.95,
    ),
    DetectionRule(
        PIIType.API_KEY,
        re.compile(
            r"(?:api[_-]?key|apikey|access[_-]?token)[\s=:]+['\"]?([a-z0-9_\-]{32,})['\"]?",
            re.IGNORECASE,
        ),
        0.93,
        validator=validators.is_high_entropy_key,
        group=1,
    ),
    DetectionRule(
        PIIType.API_KEY,
        re.compile(r"\b(AKIA[0-9A-Z]{16})\b"),
        0.99,
        group=1,
    ),
    DetectionRule(
        PIIType.DATE_OF_BIRTH,
        re.compile(
            r"\b(?:0?[1-9]|1[0-2])[/-](?:0?[1-9]|[12][0-9]|3[01])[/-](?:19|20)\d{2}\b"
        ),
        0.75,
        context_validation=True,
        context_keywords=("dob", "birth", "born", "birthday", "date of birth"),
    ),
    DetectionRule(
        PIIType.MAC_ADDRESS,
        re.compile(r"\b(?:[0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}\b"),
        0.94,
    ),
    DetectionRule(
        PIIType.IBAN,
        re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{4}\d{7}[A-Z0-9]{0,16}\b"),
        0.96,
        validator=validators.iban_ok,
    ),
    DetectionRule(
        PIIType.PASSPORT_NUMBER,
        re.compile(r"\b[A-Z]{1,2}\d{6,9}\b"),
        0.70,
        context_validation=True,
        context_keywords=("passport", "travel document"),
    ),
    DetectionRule(
        PIIType.ZIP_CODE,
        re.compile(r"\b\d{5}(?:-\d{4})?\b"),
        0.70,
        context_validation=True,
        context_keywords=("zip", "postal", "code"),
    ),
    DetectionRule(
        PIIType.STREET_ADDRESS,
        re.compile(
            r"\b\d{1,6}\s+[\w\s]{1,60}?\b(?:street|st|avenue|ave|road|rd|boulevard|blvd"
            r"|lane|ln|drive|dr|way|court|ct|place|pl)\b",
            re.IGNORECASE,
        ),
        0.80,
        context_validation=True,
        context_keywords=("address", "live", "reside", "located"),
    ),
    DetectionRule(
        PIIType.PERSON_NAME,
        re.compile(r"\b(?:Mr\.|Mrs\.|Ms\.|Dr\.|Prof\.)\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b"),
        0.85,
        context_validation=True,
    ),
)


class PatternDetector(BaseDetector):
    """Regex and checksum based detector with an optional sensitive-word dictionary.

    Detection is pure: the same text always yields the same matches.
    """

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII; Lower"

    DICTIONARY_CONFIDENCE: ClassVar[float] = 1.0
    KEYWORD_BOOST: ClassVar[float] = 0.05
    DOB_WITHOUT_CONTEXT_FACTOR: ClassVar[float] = 0.8

    # Type-specific keywords and the boost they give when found near a match.
    _TYPE_BOOSTS: ClassVar[dict[PIIType, tuple[tuple[str, ...], float]]] = {
        PIIType.SSN: (("ssn", "social security"), 0.05),
        PIIType.DATE_OF_BIRTH: (("dob", "date of birth", "born", "birthday"), 0.15),
        PIIType.CREDIT_CARD: (("card", "visa", "mastercard", "amex", "payment"), 0.05),
        PIIType.PHONE_NUMBER: (("phone", "call", "mobile", "tel"), 0.05),
        PIIType.PERSON_NAME: (("name", "mr.", "mrs.", "ms.", "dr."), 0.10),
    }

    def __init__(
        self,
        *,
        context_window: int = 50,
        enable_validation: bool = True,
        extra_rules: Iterable[DetectionRule] = (),
        sensitive_words: Iterable[str] = (),
    ) -> None:
        self._context_window = max(0, context_window)
        self._enable_validation = enable_validation
        self._rules: tuple[DetectionRule, ...] = (*DEFAULT_RULES, *extra_rules)
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )
        self._dictionary = frozenset(
            self._transliterator.transliterate(word.strip())
            for word in sensitive_words
            if word and word.strip()
        ) - {""}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(self, text: str) -> list[PIIMatch]:
        if not text:
            return []

        matches: list[PIIMatch] = []
        for rule in self._rules:
            matches.extend(self._detect_with_rule(text, rule))
        if self._dictionary:
            matches.extend(self._detect_dictionary(text))

        matches.sort(key=lambda m: (m.start_offset, m.end_offset))
        Log.debug(f"Detected {len(matches)} candidate PII spans in {len(text)} chars")
        return matches

    # ------------------------------------------------------------------
    # Pattern recognizers
    # ------------------------------------------------------------------

    def _detect_with_rule(self, text: str, rule: DetectionRule) -> Iterator[PIIMatch]:
        for found in rule.pattern.finditer(text):
            start, end = found.span(rule.group)
            if start >= end:
                continue
            value = text[start:end]
            if self._enable_validation and rule.validator and not rule.validator(value):
                continue

            context = self._context(text, start, end)
            confidence = rule.base_confidence
            if rule.context_validation:
                confidence = self._adjust_confidence(confidence, rule, context)

            yield PIIMatch(
                pii_type=rule.pii_type,
                start_offset=start,
                end_offset=end,
                confidence=round(confidence, 4),
                context_hint=context,
            )

    def _context(self, text: str, start: int, end: int) -> str:
        window_start = max(0, start - self._context_window)
        window_end = min(len(text), end + self._context_window)
        return text[window_start:window_end]

    def _adjust_confidence(self, confidence: float, rule: DetectionRule, context: str) -> float:
        lowered = context.lower()

        boost = self._TYPE_BOOSTS.get(rule.pii_type)
        if boost is not None:
            keywords, amount = boost
            if any(keyword in lowered for keyword in keywords):
                confidence = min(1.0, confidence + amount)
            elif rule.pii_type is PIIType.DATE_OF_BIRTH:
                confidence *= self.DOB_WITHOUT_CONTEXT_FACTOR

        if any(keyword in lowered for keyword in rule.context_keywords):
            confidence = min(1.0, confidence + self.KEYWORD_BOOST)

        return confidence

    # ------------------------------------------------------------------
    # Sensitive-word dictionary
    # ------------------------------------------------------------------

    def _transliterate_with_mapping(self, text: str) -> tuple[str, list[int]]:
        """Transliterate *text* character-by-character via ICU.

        Returns:
            (transliterated_text, trans_to_orig) where trans_to_orig[j]
            is the index in *text* that produced transliterated char j.
        """
        parts: list[str] = []
        trans_to_orig: list[int] = []

        for orig_idx, ch in enumerate(text):
            t = self._transliterator.transliterate(ch)
            parts.append(t)
            trans_to_orig.extend([orig_idx] * len(t))

        return "".join(parts), trans_to_orig

    def _detect_dictionary(self, text: str) -> Iterator[PIIMatch]:
        """Find whole-word dictionary hits and map them to original offsets."""
        transliterated, trans_to_orig = self._transliterate_with_mapping(text)

        for word in sorted(self._dictionary):
            start = 0
            while True:
                idx = transliterated.find(word, start)
                if idx == -1:
                    break
                end = idx + len(word)
                before_ok = idx == 0 or not transliterated[idx - 1].isalnum()
                after_ok = end == len(transliterated) or not transliterated[end].isalnum()
                if before_ok and after_ok:
                    orig_start = trans_to_orig[idx]
                    orig_end = trans_to_orig[end - 1] + 1
                    yield PIIMatch(
                        pii_type=PIIType.CUSTOM,
                        start_offset=orig_start,
                        end_offset=orig_end,
                        confidence=self.DICTIONARY_CONFIDENCE,
                        context_hint=self._context(text, orig_start, orig_end),
                    )
                start = idx + 1
