"""Anonymization orchestrator.

Processing flow:
1. Resolve the policy (request policy, else the engine default).
2. Check the top-level shape: text, a record, or a sequence.
3. Traverse the content, detecting and replacing PII.
4. Aggregate metrics and the per-type map of applied strategies.
5. Evaluate the requested compliance frameworks and build an attestation.
6. Derive warnings and the overall confidence score.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import ClassVar

from datavault.anonymization.compliance import check_compliance
from datavault.anonymization.exceptions import AnonymizationError, UnsupportedContentError
from datavault.anonymization.models import (
    AnonymizationMetrics,
    AnonymizationReport,
    AnonymizationRequest,
    AnonymizationStrategy,
    AnonymizationWarning,
    ComplianceAttestation,
    ComplianceCheckResult,
    PIIType,
    Policy,
    Severity,
    TraversalResult,
)
from datavault.anonymization.traverser import ContentTraverser
from datavault.logging.logger import Log


class AnonymizationEngine:
    """Top-level entry point: request in, report out.

    Every call is independent; nothing is shared between invocations apart
    from the immutable traverser configuration.
    """

    HIGH_CONFIDENCE_THRESHOLD: ClassVar[float] = 0.9
    DETECTION_WEIGHT: ClassVar[float] = 0.6
    COVERAGE_WEIGHT: ClassVar[float] = 0.4

    def __init__(
        self, traverser: ContentTraverser, *, default_policy: Policy | None = None
    ) -> None:
        self._traverser = traverser
        self._default_policy = default_policy or Policy()

    @property
    def default_policy(self) -> Policy:
        return self._default_policy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def anonymize(self, request: AnonymizationRequest) -> AnonymizationReport:
        """Anonymize the request content and report on it.

        Raises:
            UnsupportedContentError: content is not text, a record or a sequence.
            TraversalLimitError: content nests too deeply or a string is too long.
            AnonymizationError: any other failure; no partial output is returned.
        """
        try:
            return await self._run(request)
        except AnonymizationError:
            raise
        except Exception as exc:
            raise AnonymizationError(f"Anonymization failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _run(self, request: AnonymizationRequest) -> AnonymizationReport:
        started = time.perf_counter()
        policy = request.policy or self._default_policy
        self._check_shape(request.content)

        traversal = await self._traverser.anonymize(request.content, "", policy)

        metrics = self._build_metrics(traversal)
        applied = self._applied_strategies(traversal)
        compliance_results = check_compliance(
            policy.compliance_frameworks,
            traversal.detections,
            applied,
            field_results=traversal.field_results,
        )
        attestation = self._attest(request.request_id, compliance_results)
        warnings = self._build_warnings(traversal, compliance_results)
        metrics.processing_time_ms = round((time.perf_counter() - started) * 1000, 3)

        Log.info(
            "Anonymization complete",
            request_id=request.request_id,
            fields_processed=metrics.total_fields_processed,
            detections=metrics.pii_detections,
            frameworks_satisfied=",".join(attestation.frameworks_satisfied) or "-",
        )

        return AnonymizationReport(
            request_id=request.request_id,
            anonymized_content=traversal.anonymized_value,
            metrics=metrics,
            compliance=attestation,
            compliance_results=compliance_results,
            field_results=traversal.field_results if request.include_detection_details else None,
            warnings=warnings,
            confidence_score=self._confidence_score(metrics),
        )

    @staticmethod
    def _check_shape(content: object) -> None:
        if isinstance(content, (str, Mapping, list, tuple)):
            return
        raise UnsupportedContentError(
            f"Content must be text, a record or a sequence, got {type(content).__name__}"
        )

    @staticmethod
    def _build_metrics(traversal: TraversalResult) -> AnonymizationMetrics:
        breakdown: dict[PIIType, int] = {}
        for detection in traversal.detections:
            breakdown[detection.pii_type] = breakdown.get(detection.pii_type, 0) + 1

        detections = traversal.detections
        average = (
            sum(d.confidence for d in detections) / len(detections) if detections else 1.0
        )
        return AnonymizationMetrics(
            total_fields_processed=traversal.fields_processed,
            fields_anonymized=traversal.fields_anonymized,
            pii_detections=len(detections),
            detection_breakdown=breakdown,
            average_confidence=average,
        )

    @staticmethod
    def _applied_strategies(traversal: TraversalResult) -> dict[PIIType, AnonymizationStrategy]:
        applied: dict[PIIType, AnonymizationStrategy] = {}
        for result in traversal.field_results:
            applied.setdefault(result.pii_type, result.strategy_applied)
        return applied

    @staticmethod
    def _attest(
        request_id: str, results: dict[str, ComplianceCheckResult]
    ) -> ComplianceAttestation:
        timestamp = datetime.now(timezone.utc).isoformat()
        payload = {
            "request_id": request_id,
            "frameworks": [
                {
                    "framework": name,
                    "compliant": result.compliant,
                    "violations": len(result.violations),
                }
                for name, result in results.items()
            ],
            "timestamp": timestamp,
        }
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()
        return ComplianceAttestation(
            frameworks_satisfied=[name for name, result in results.items() if result.compliant],
            attestation_hash=digest,
            timestamp=timestamp,
        )

    def _build_warnings(
        self, traversal: TraversalResult, results: dict[str, ComplianceCheckResult]
    ) -> list[AnonymizationWarning]:
        warnings = [
            AnonymizationWarning(
                code=violation.code,
                message=violation.description,
                field_path=violation.field_path,
            )
            for result in results.values()
            for violation in result.violations
            if violation.severity is not Severity.CRITICAL
        ]

        low = sum(
            1 for d in traversal.detections if d.confidence < self.HIGH_CONFIDENCE_THRESHOLD
        )
        if low:
            warnings.append(
                AnonymizationWarning(
                    code="LOW_CONFIDENCE_DETECTIONS",
                    message=f"{low} detection(s) have confidence < "
                    f"{self.HIGH_CONFIDENCE_THRESHOLD:.0%}",
                )
            )
        return warnings

    def _confidence_score(self, metrics: AnonymizationMetrics) -> float:
        if metrics.pii_detections == 0 or metrics.total_fields_processed == 0:
            return 1.0
        coverage = metrics.fields_anonymized / metrics.total_fields_processed
        return (
            metrics.average_confidence * self.DETECTION_WEIGHT + coverage * self.COVERAGE_WEIGHT
        )
