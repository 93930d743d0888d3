import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar

from datavault.anonymization.base import BaseDetector
from datavault.anonymization.models import PIIMatch, PIIType

T = TypeVar("T")


class FixedDetector(BaseDetector):
    """Returns a match for every occurrence of the configured substrings."""

    def __init__(self, spans: Iterable[tuple[str, PIIType, float]]) -> None:
        self._spans = list(spans)

    def detect(self, text: str) -> list[PIIMatch]:
        matches: list[PIIMatch] = []
        for needle, pii_type, confidence in self._spans:
            start = text.find(needle)
            while start != -1:
                matches.append(PIIMatch(pii_type, start, start + len(needle), confidence))
                start = text.find(needle, start + 1)
        matches.sort(key=lambda m: (m.start_offset, m.end_offset))
        return matches


def run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def match_of(text: str, value: str, pii_type: PIIType, confidence: float = 1.0) -> PIIMatch:
    start = text.index(value)
    return PIIMatch(pii_type, start, start + len(value), confidence)
