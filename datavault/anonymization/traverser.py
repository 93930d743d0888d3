"""Recursive content traverser.

Walks text, records (mappings) and sequences. Every string leaf is scanned by
the detector, filtered by the policy threshold, de-overlapped and rewritten
right-to-left so that earlier match offsets stay valid while later spans are
replaced. Non-string scalars pass through untouched and are not counted.
"""

from __future__ import annotations

import hmac
import secrets
from collections.abc import Mapping
from typing import Any

from datavault.anonymization.base import BaseDetector
from datavault.anonymization.compliance import recommended_strategy
from datavault.anonymization.dispatcher import apply_strategy, resolve_strategy
from datavault.anonymization.exceptions import TraversalLimitError
from datavault.anonymization.models import (
    AnonymizationStrategy,
    FieldAnonymizationResult,
    PIIMatch,
    PIIType,
    Policy,
    TraversalResult,
)
from datavault.anonymization.strategies import StrategyConfig
from datavault.logging.logger import Log


def resolve_strategy_for(pii_type: PIIType, policy: Policy) -> AnonymizationStrategy:
    """Per-type override, then framework recommendation, then the policy default."""
    override = policy.strategy_overrides.get(pii_type)
    if override is not None:
        return resolve_strategy(override)
    recommended = recommended_strategy(pii_type, policy.compliance_frameworks)
    if recommended is not None:
        return recommended
    return resolve_strategy(policy.default_strategy)


def resolve_overlaps(matches: list[PIIMatch]) -> list[PIIMatch]:
    """Keep the strongest match of every overlapping group.

    Matches are taken greedily by confidence, then span length, then earliest
    start; a match that overlaps an already kept one is dropped. Adjacent spans
    do not overlap. The result is ordered by start offset.
    """
    ranked = sorted(matches, key=lambda m: (-m.confidence, -m.length, m.start_offset))
    kept: list[PIIMatch] = []
    for match in ranked:
        if not any(match.overlaps(other) for other in kept):
            kept.append(match)
    kept.sort(key=lambda m: m.start_offset)
    return kept


def fingerprint(value: str, key: bytes) -> str:
    """HMAC-SHA256 of a matched value under *key*, truncated to 16 hex chars."""
    return hmac.new(key, value.encode("utf-8"), "sha256").hexdigest()[:16]


def child_path(prefix: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{prefix}[{key}]"
    return f"{prefix}.{key}" if prefix else str(key)


class ContentTraverser:
    """Applies detection and strategies to every string inside a value."""

    def __init__(
        self,
        detector: BaseDetector,
        strategy_config: StrategyConfig | None = None,
        *,
        max_depth: int = 64,
        max_text_length: int = 1_000_000,
        audit_key: str = "",
    ) -> None:
        self._detector = detector
        self._strategy_config = strategy_config or StrategyConfig()
        self._max_depth = max_depth
        self._max_text_length = max_text_length
        # A fresh random key per traverser when none is configured.
        self._audit_key = audit_key.encode("utf-8") if audit_key else secrets.token_bytes(32)

    @property
    def detector(self) -> BaseDetector:
        return self._detector

    async def anonymize(
        self, value: Any, field_path_prefix: str, policy: Policy
    ) -> TraversalResult:
        return await self._visit(value, field_path_prefix, policy, depth=0)

    # ------------------------------------------------------------------
    # Node kinds
    # ------------------------------------------------------------------

    async def _visit(self, value: Any, path: str, policy: Policy, depth: int) -> TraversalResult:
        if isinstance(value, str):
            return await self._anonymize_text(value, path, policy)
        if isinstance(value, Mapping):
            self._check_depth(depth, path)
            return await self._anonymize_record(value, path, policy, depth)
        if isinstance(value, (list, tuple)):
            self._check_depth(depth, path)
            return await self._anonymize_sequence(value, path, policy, depth)
        return TraversalResult(anonymized_value=value)

    def _check_depth(self, depth: int, path: str) -> None:
        if depth >= self._max_depth:
            raise TraversalLimitError(
                f"Nesting deeper than {self._max_depth} levels at '{path or '<root>'}'"
            )

    async def _anonymize_record(
        self, record: Mapping[Any, Any], path: str, policy: Policy, depth: int
    ) -> TraversalResult:
        result = TraversalResult(anonymized_value={})
        for key, child in record.items():
            child_result = await self._visit(child, child_path(path, str(key)), policy, depth + 1)
            result.anonymized_value[key] = child_result.anonymized_value
            result.absorb(child_result)
        return result

    async def _anonymize_sequence(
        self, items: list[Any] | tuple[Any, ...], path: str, policy: Policy, depth: int
    ) -> TraversalResult:
        values: list[Any] = []
        result = TraversalResult(anonymized_value=values)
        for index, child in enumerate(items):
            child_result = await self._visit(child, child_path(path, index), policy, depth + 1)
            values.append(child_result.anonymized_value)
            result.absorb(child_result)
        if isinstance(items, tuple):
            result.anonymized_value = tuple(values)
        return result

    # ------------------------------------------------------------------
    # String leaf
    # ------------------------------------------------------------------

    async def _anonymize_text(self, text: str, path: str, policy: Policy) -> TraversalResult:
        if len(text) > self._max_text_length:
            raise TraversalLimitError(
                f"Text at '{path or '<root>'}' is {len(text)} chars; "
                f"limit is {self._max_text_length}"
            )

        candidates = [
            m
            for m in self._detector.detect(text)
            if m.confidence >= policy.min_detection_confidence
        ]
        if not candidates:
            return TraversalResult(anonymized_value=text, fields_processed=1)

        matches = resolve_overlaps(candidates)

        # Replace from the end so lower offsets stay valid.
        anonymized = text
        field_results: list[FieldAnonymizationResult] = []
        for match in sorted(matches, key=lambda m: m.start_offset, reverse=True):
            strategy = resolve_strategy_for(match.pii_type, policy)
            replacement = await apply_strategy(strategy, text, match, self._strategy_config)
            anonymized = (
                anonymized[: match.start_offset]
                + replacement.replacement
                + anonymized[match.end_offset :]
            )
            field_results.append(
                FieldAnonymizationResult(
                    field_path=path,
                    pii_type=match.pii_type,
                    strategy_applied=strategy,
                    confidence=match.confidence,
                    original_hash=fingerprint(match.value_in(text), self._audit_key),
                )
            )
        field_results.reverse()

        Log.debug(
            f"Anonymized {len(matches)} span(s) at '{path or '<root>'}'",
            dropped_overlaps=len(candidates) - len(matches),
        )
        return TraversalResult(
            anonymized_value=anonymized,
            detections=matches,
            field_results=field_results,
            fields_processed=1,
            fields_anonymized=1,
        )
