"""Compliance engine.

Each supported framework is an immutable requirement table: which strategies
are acceptable per PII type, which types must always be anonymized and which
violation severities make the framework fail. Unknown framework names are
ignored.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

from datavault.anonymization.dispatcher import effective_strategy
from datavault.anonymization.models import (
    AnonymizationStrategy,
    ComplianceCheckResult,
    ComplianceViolation,
    FieldAnonymizationResult,
    PIIMatch,
    PIIType,
    Severity,
)

S = AnonymizationStrategy
P = PIIType

GDPR = "gdpr"
HIPAA = "hipaa"
CCPA = "ccpa"
PCI_DSS = "pci_dss"
SOC2 = "soc2"


@dataclass(frozen=True)
class FrameworkRequirements:
    name: str
    allowed_strategies: Mapping[PIIType, tuple[AnonymizationStrategy, ...]]
    mandatory: frozenset[PIIType]
    blocking_severities: frozenset[Severity]
    missing_code: str
    missing_severity: Severity
    mismatch_code: str
    mismatch_severity: Severity
    min_confidence: float = 0.85
    special_categories: frozenset[PIIType] = frozenset()
    recommendations: tuple[str, ...] = field(default=())


CRITICAL_ONLY = frozenset({Severity.CRITICAL})
HIGH_OR_CRITICAL = frozenset({Severity.HIGH, Severity.CRITICAL})

# ----------------------------------------------------------------------
# Requirement tables
# ----------------------------------------------------------------------

GDPR_REQUIREMENTS = FrameworkRequirements(
    name=GDPR,
    allowed_strategies=MappingProxyType(
        {
            P.BIOMETRIC_DATA: (S.HASH, S.ENCRYPT, S.REDACT),
            P.MEDICAL_RECORD_NUMBER: (S.HASH, S.ENCRYPT, S.REDACT),
            P.HEALTH_INSURANCE_NUMBER: (S.HASH, S.ENCRYPT, S.REDACT),
            P.EMAIL: (S.MASK, S.HASH, S.PSEUDONYMIZE, S.REDACT),
            P.PHONE_NUMBER: (S.MASK, S.HASH, S.PSEUDONYMIZE, S.REDACT),
            P.PERSON_NAME: (S.MASK, S.HASH, S.PSEUDONYMIZE, S.REDACT),
            P.FULL_ADDRESS: (S.GENERALIZE, S.MASK, S.REDACT),
            P.DATE_OF_BIRTH: (S.GENERALIZE, S.MASK, S.REDACT),
            P.SSN: (S.HASH, S.REDACT),
            P.NATIONAL_ID: (S.HASH, S.REDACT),
            P.PASSPORT_NUMBER: (S.HASH, S.REDACT),
        }
    ),
    mandatory=frozenset(
        {
            P.SSN,
            P.NATIONAL_ID,
            P.PASSPORT_NUMBER,
            P.BIOMETRIC_DATA,
            P.MEDICAL_RECORD_NUMBER,
            P.HEALTH_INSURANCE_NUMBER,
        }
    ),
    blocking_severities=CRITICAL_ONLY,
    missing_code="GDPR_MANDATORY_ANON",
    missing_severity=Severity.CRITICAL,
    mismatch_code="GDPR_STRATEGY_MISMATCH",
    mismatch_severity=Severity.MEDIUM,
    special_categories=frozenset(
        {P.BIOMETRIC_DATA, P.MEDICAL_RECORD_NUMBER, P.HEALTH_INSURANCE_NUMBER}
    ),
    recommendations=(
        "Ensure data retention periods are documented and enforced per Article 5(1)(e).",
        "Maintain records of processing activities per Article 30.",
    ),
)

HIPAA_SAFE_HARBOR_IDENTIFIERS = frozenset(
    {
        P.PERSON_NAME,
        P.FULL_ADDRESS,
        P.STREET_ADDRESS,
        P.CITY,
        P.STATE,
        P.ZIP_CODE,
        P.DATE_OF_BIRTH,
        P.PHONE_NUMBER,
        P.EMAIL,
        P.SSN,
        P.MEDICAL_RECORD_NUMBER,
        P.HEALTH_INSURANCE_NUMBER,
        P.DRIVERS_LICENSE,
        P.IP_ADDRESS,
        P.URL,
        P.BIOMETRIC_DATA,
    }
)

HIPAA_PHI_TYPES = frozenset(
    {P.MEDICAL_RECORD_NUMBER, P.HEALTH_INSURANCE_NUMBER, P.PRESCRIPTION_NUMBER}
)

HIPAA_REQUIREMENTS = FrameworkRequirements(
    name=HIPAA,
    allowed_strategies=MappingProxyType(
        {
            P.MEDICAL_RECORD_NUMBER: (S.REDACT, S.HASH),
            P.HEALTH_INSURANCE_NUMBER: (S.REDACT, S.HASH),
            P.PRESCRIPTION_NUMBER: (S.REDACT, S.HASH),
            P.BIOMETRIC_DATA: (S.REDACT,),
            P.SSN: (S.REDACT, S.HASH),
            P.PERSON_NAME: (S.REDACT, S.PSEUDONYMIZE),
            P.DATE_OF_BIRTH: (S.GENERALIZE, S.REDACT),
            P.PHONE_NUMBER: (S.REDACT,),
            P.EMAIL: (S.REDACT, S.HASH),
            P.FULL_ADDRESS: (S.REDACT,),
            P.ZIP_CODE: (S.GENERALIZE,),
        }
    ),
    mandatory=HIPAA_SAFE_HARBOR_IDENTIFIERS,
    blocking_severities=CRITICAL_ONLY,
    missing_code="HIPAA_SAFE_HARBOR_VIOLATION",
    missing_severity=Severity.CRITICAL,
    mismatch_code="HIPAA_STRATEGY_INSUFFICIENT",
    mismatch_severity=Severity.HIGH,
    min_confidence=0.90,
    recommendations=(
        "Maintain de-identification documentation per 45 CFR 164.514(b)",
        "Consider Expert Determination method for complex cases",
    ),
)

CCPA_REQUIREMENTS = FrameworkRequirements(
    name=CCPA,
    allowed_strategies=MappingProxyType(
        {
            P.SSN: (S.HASH, S.REDACT),
            P.DRIVERS_LICENSE: (S.HASH, S.REDACT),
            P.PASSPORT_NUMBER: (S.HASH, S.REDACT),
            P.EMAIL: (S.MASK, S.HASH, S.REDACT),
            P.PHONE_NUMBER: (S.MASK, S.HASH, S.REDACT),
            P.FULL_ADDRESS: (S.MASK, S.GENERALIZE, S.REDACT),
            P.BANK_ACCOUNT: (S.HASH, S.REDACT),
            P.CREDIT_CARD: (S.MASK, S.HASH, S.REDACT),
            P.BIOMETRIC_DATA: (S.REDACT,),
            P.IP_ADDRESS: (S.GENERALIZE, S.HASH, S.REDACT),
        }
    ),
    mandatory=frozenset({P.SSN, P.DRIVERS_LICENSE, P.BANK_ACCOUNT, P.BIOMETRIC_DATA}),
    blocking_severities=HIGH_OR_CRITICAL,
    missing_code="CCPA_PI_NOT_PROTECTED",
    missing_severity=Severity.HIGH,
    mismatch_code="CCPA_STRATEGY_RECOMMENDATION",
    mismatch_severity=Severity.MEDIUM,
    recommendations=(
        "Ensure disclosure of personal information categories collected (Section 1798.100)",
        "Implement consumer rights: access, deletion, opt-out (Section 1798.105-125)",
        "Do Not Sell My Personal Information opt-out must be available",
    ),
)

PCI_DSS_REQUIREMENTS = FrameworkRequirements(
    name=PCI_DSS,
    allowed_strategies=MappingProxyType(
        {
            P.CREDIT_CARD: (S.MASK, S.HASH, S.TOKENIZE, S.ENCRYPT, S.REDACT),
            P.BANK_ACCOUNT: (S.HASH, S.TOKENIZE, S.ENCRYPT, S.REDACT),
        }
    ),
    mandatory=frozenset({P.CREDIT_CARD}),
    blocking_severities=HIGH_OR_CRITICAL,
    missing_code="PCI_DSS_PAN_NOT_PROTECTED",
    missing_severity=Severity.CRITICAL,
    mismatch_code="PCI_DSS_PAN_UNREADABLE",
    mismatch_severity=Severity.HIGH,
    recommendations=(
        "Render stored PAN unreadable per Requirement 3.4",
        "Mask PAN when displayed; show at most the first six and last four digits",
    ),
)

FRAMEWORK_REQUIREMENTS: Mapping[str, FrameworkRequirements] = MappingProxyType(
    {
        GDPR: GDPR_REQUIREMENTS,
        HIPAA: HIPAA_REQUIREMENTS,
        CCPA: CCPA_REQUIREMENTS,
        PCI_DSS: PCI_DSS_REQUIREMENTS,
    }
)

SUPPORTED_FRAMEWORKS = frozenset({*FRAMEWORK_REQUIREMENTS, SOC2})


def normalize_framework(name: str) -> str | None:
    """Canonical framework name, or None when the framework is not supported."""
    canonical = name.strip().lower().replace("-", "_")
    return canonical if canonical in SUPPORTED_FRAMEWORKS else None


def _known_frameworks(frameworks: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for name in frameworks:
        canonical = normalize_framework(name)
        if canonical is not None and canonical not in seen:
            seen.append(canonical)
    return seen


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def strategy_satisfies(
    strategy: AnonymizationStrategy, allowed: Sequence[AnonymizationStrategy]
) -> bool:
    """A strategy satisfies a requirement when it or the strategy it runs as is allowed."""
    return strategy in allowed or effective_strategy(strategy) in allowed


# ----------------------------------------------------------------------
# Evaluation
# ----------------------------------------------------------------------


class _Evaluation:
    """Collects violations for one framework, at most one per (code, type)."""

    def __init__(self, first_paths: Mapping[PIIType, str]) -> None:
        self.violations: list[ComplianceViolation] = []
        self.recommendations: list[str] = []
        self._first_paths = first_paths
        self._seen: set[tuple[str, PIIType]] = set()

    def violate(
        self,
        code: str,
        description: str,
        severity: Severity,
        pii_type: PIIType,
        remediation: str,
    ) -> None:
        if (code, pii_type) in self._seen:
            return
        self._seen.add((code, pii_type))
        self.violations.append(
            ComplianceViolation(
                code=code,
                description=description,
                severity=severity,
                remediation=remediation,
                pii_type=pii_type,
                field_path=self._first_paths.get(pii_type),
            )
        )


def _evaluate_table(
    requirements: FrameworkRequirements,
    evaluation: _Evaluation,
    detected_types: list[PIIType],
    applied_strategies: Mapping[PIIType, AnonymizationStrategy],
) -> None:
    for pii_type in detected_types:
        strategy = applied_strategies.get(pii_type)
        allowed = requirements.allowed_strategies.get(pii_type)

        if strategy is None:
            if pii_type in requirements.mandatory:
                evaluation.violate(
                    requirements.missing_code,
                    f"{pii_type.value} detected but not anonymized",
                    requirements.missing_severity,
                    pii_type,
                    f"Apply an anonymization strategy to {pii_type.value} data",
                )
            continue

        if allowed and not strategy_satisfies(strategy, allowed):
            options = ", ".join(s.value for s in allowed)
            evaluation.violate(
                requirements.mismatch_code,
                f"Strategy '{strategy.value}' is not sufficient for {pii_type.value}",
                requirements.mismatch_severity,
                pii_type,
                f"Use one of: {options}",
            )
            if pii_type in requirements.special_categories:
                evaluation.violate(
                    f"{requirements.name.upper()}_SPECIAL_CATEGORY",
                    f"{pii_type.value} requires stronger protection as a special category",
                    Severity.HIGH,
                    pii_type,
                    f"Use one of: {options}",
                )


def _hipaa_rules(
    evaluation: _Evaluation,
    detected_types: list[PIIType],
    applied_strategies: Mapping[PIIType, AnonymizationStrategy],
) -> None:
    for pii_type in detected_types:
        strategy = applied_strategies.get(pii_type)
        if (
            pii_type in HIPAA_PHI_TYPES
            and strategy is not None
            and not strategy_satisfies(strategy, (S.REDACT, S.HASH))
        ):
            evaluation.violate(
                "HIPAA_PHI_PROTECTION",
                f"{pii_type.value} requires strong de-identification",
                Severity.CRITICAL,
                pii_type,
                "PHI must be redacted or hashed",
            )

    if P.ZIP_CODE in detected_types and applied_strategies.get(P.ZIP_CODE) is S.GENERALIZE:
        evaluation.recommendations.append(
            "ZIP code generalization must ensure first 3 digits represent population > 20,000"
        )
    if P.DATE_OF_BIRTH in detected_types:
        evaluation.recommendations.append(
            "For patients 89+, dates must be aggregated to year level or removed"
        )


def _check_framework(
    requirements: FrameworkRequirements,
    detections: Sequence[PIIMatch],
    applied_strategies: Mapping[PIIType, AnonymizationStrategy],
    first_paths: Mapping[PIIType, str],
) -> ComplianceCheckResult:
    detected_types = list(dict.fromkeys(d.pii_type for d in detections))
    evaluation = _Evaluation(first_paths)

    _evaluate_table(requirements, evaluation, detected_types, applied_strategies)
    if requirements.name == HIPAA:
        _hipaa_rules(evaluation, detected_types, applied_strategies)

    if any(d.confidence < requirements.min_confidence for d in detections):
        evaluation.recommendations.append(
            "Some detections have low confidence. Consider manual review."
        )
    evaluation.recommendations.extend(requirements.recommendations)

    compliant = not any(
        v.severity in requirements.blocking_severities for v in evaluation.violations
    )
    return ComplianceCheckResult(
        framework=requirements.name,
        compliant=compliant,
        violations=evaluation.violations,
        recommendations=evaluation.recommendations,
        checked_at=_now(),
    )


def check_compliance(
    frameworks: Iterable[str],
    detections: Sequence[PIIMatch],
    applied_strategies: Mapping[PIIType, AnonymizationStrategy],
    *,
    field_results: Sequence[FieldAnonymizationResult] | None = None,
) -> dict[str, ComplianceCheckResult]:
    """Evaluate every recognized framework and return its verdict keyed by canonical name."""
    first_paths: dict[PIIType, str] = {}
    for result in field_results or ():
        first_paths.setdefault(result.pii_type, result.field_path)

    results: dict[str, ComplianceCheckResult] = {}
    for name in _known_frameworks(frameworks):
        requirements = FRAMEWORK_REQUIREMENTS.get(name)
        if requirements is None:
            results[name] = ComplianceCheckResult(
                framework=name,
                compliant=True,
                recommendations=[f"{name.upper()} has no data-level anonymization rules"],
                checked_at=_now(),
            )
            continue
        results[name] = _check_framework(requirements, detections, applied_strategies, first_paths)
    return results


def recommended_strategy(
    pii_type: PIIType, frameworks: Iterable[str]
) -> AnonymizationStrategy | None:
    """Strategy acceptable to the most frameworks for *pii_type*.

    Returns None when no recognized framework has a rule for the type. Frameworks
    without a rule for it count as asking for redact. Ties go to redact, then to
    the strategy listed first.
    """
    tables = [
        FRAMEWORK_REQUIREMENTS[name]
        for name in _known_frameworks(frameworks)
        if name in FRAMEWORK_REQUIREMENTS
    ]
    if not any(pii_type in table.allowed_strategies for table in tables):
        return None

    counts: dict[AnonymizationStrategy, int] = {}
    for table in tables:
        for strategy in table.allowed_strategies.get(pii_type, (S.REDACT,)):
            counts[strategy] = counts.get(strategy, 0) + 1

    best_count = max(counts.values())
    if counts.get(S.REDACT) == best_count:
        return S.REDACT
    return next(s for s, count in counts.items() if count == best_count)


def requires_mandatory_anonymization(pii_type: PIIType, frameworks: Iterable[str]) -> bool:
    return any(
        pii_type in FRAMEWORK_REQUIREMENTS[name].mandatory
        for name in _known_frameworks(frameworks)
        if name in FRAMEWORK_REQUIREMENTS
    )
