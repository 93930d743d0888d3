from typing import Any

from datavault.anonymization.models import (
    AnonymizationReport,
    ComplianceCheckResult,
    ComplianceViolation,
    FieldAnonymizationResult,
)


class ReportSerializer:
    """Converts an AnonymizationReport to a JSON-serializable structure."""

    def serialize(self, report: AnonymizationReport) -> dict[str, Any]:
        """Transform a report into a JSON-ready dict.

        Enum members are written as their wire names. ``field_results`` is only
        present when the report carries them.
        """
        metrics = report.metrics
        payload: dict[str, Any] = {
            "request_id": report.request_id,
            "anonymized_content": report.anonymized_content,
            "metrics": {
                "total_fields_processed": metrics.total_fields_processed,
                "fields_anonymized": metrics.fields_anonymized,
                "pii_detections": metrics.pii_detections,
                "detection_breakdown": {
                    pii_type.value: count
                    for pii_type, count in metrics.detection_breakdown.items()
                },
                "average_confidence": round(metrics.average_confidence, 4),
                "processing_time_ms": metrics.processing_time_ms,
            },
            "compliance": {
                "frameworks_satisfied": list(report.compliance.frameworks_satisfied),
                "attestation_hash": report.compliance.attestation_hash,
                "timestamp": report.compliance.timestamp,
            },
            "compliance_results": {
                name: self._compliance_to_dict(result)
                for name, result in report.compliance_results.items()
            },
            "warnings": [
                {"code": w.code, "message": w.message, "field_path": w.field_path}
                for w in report.warnings
            ],
            "confidence_score": round(report.confidence_score, 4),
        }
        if report.field_results is not None:
            payload["field_results"] = [self.field_result_to_dict(r) for r in report.field_results]
        return payload

    def field_result_to_dict(self, result: FieldAnonymizationResult) -> dict[str, Any]:
        return {
            "field_path": result.field_path,
            "pii_type": result.pii_type.value,
            "strategy_applied": result.strategy_applied.value,
            "confidence": result.confidence,
            "original_hash": result.original_hash,
        }

    def _compliance_to_dict(self, result: ComplianceCheckResult) -> dict[str, Any]:
        return {
            "framework": result.framework,
            "compliant": result.compliant,
            "violations": [self._violation_to_dict(v) for v in result.violations],
            "recommendations": list(result.recommendations),
            "checked_at": result.checked_at,
        }

    def _violation_to_dict(self, violation: ComplianceViolation) -> dict[str, Any]:
        return {
            "code": violation.code,
            "description": violation.description,
            "severity": violation.severity.value,
            "remediation": violation.remediation,
            "pii_type": violation.pii_type.value if violation.pii_type else None,
            "field_path": violation.field_path,
        }
