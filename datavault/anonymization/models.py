import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PIIType(str, Enum):
    """Closed set of PII categories the engine knows about."""

    # Identity
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    SSN = "ssn"
    NATIONAL_ID = "national_id"
    PASSPORT_NUMBER = "passport_number"
    DRIVERS_LICENSE = "drivers_license"

    # Financial
    CREDIT_CARD = "credit_card"
    BANK_ACCOUNT = "bank_account"
    IBAN = "iban"
    SWIFT_CODE = "swift_code"
    CRYPTOCURRENCY_ADDRESS = "cryptocurrency_address"

    # Network
    IP_ADDRESS = "ip_address"
    IPV6_ADDRESS = "ipv6_address"
    MAC_ADDRESS = "mac_address"
    URL = "url"

    # Personal
    PERSON_NAME = "person_name"
    FULL_ADDRESS = "full_address"
    STREET_ADDRESS = "street_address"
    CITY = "city"
    STATE = "state"
    ZIP_CODE = "zip_code"
    COUNTRY = "country"
    DATE_OF_BIRTH = "date_of_birth"
    AGE = "age"

    # Credentials
    API_KEY = "api_key"
    PASSWORD = "password"
    AUTH_TOKEN = "auth_token"
    PRIVATE_KEY = "private_key"
    SECRET_KEY = "secret_key"

    # Medical
    MEDICAL_RECORD_NUMBER = "medical_record_number"
    HEALTH_INSURANCE_NUMBER = "health_insurance_number"
    PRESCRIPTION_NUMBER = "prescription_number"
    BIOMETRIC_DATA = "biometric_data"

    CUSTOM = "custom"

    @property
    def label(self) -> str:
        """Upper-case form used in placeholders, e.g. ``PHONE_NUMBER``."""
        return self.value.upper()


class AnonymizationStrategy(str, Enum):
    """Strategy tag used as the dispatch key."""

    MASK = "mask"
    REDACT = "redact"
    SUPPRESS = "suppress"
    HASH = "hash"
    GENERALIZE = "generalize"
    NOISE = "noise"
    PSEUDONYMIZE = "pseudonymize"
    TOKENIZE = "tokenize"
    K_ANONYMITY = "k_anonymity"
    L_DIVERSITY = "l_diversity"
    T_CLOSENESS = "t_closeness"
    DIFFERENTIAL_PRIVACY = "differential_privacy"
    ENCRYPT = "encrypt"

    @classmethod
    def parse(cls, value: "AnonymizationStrategy | str") -> "AnonymizationStrategy | None":
        """Return the strategy named by *value* (case-, space- and hyphen-insensitive), or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower().replace("-", "_"))
        except ValueError:
            return None


class ContentFormat(str, Enum):
    """Content-format hint carried by a request."""

    TEXT = "text"
    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"


class Severity(str, Enum):
    """Compliance violation severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class PIIMatch:
    """A detected PII span.

    Offsets are half-open positions into the text that was scanned.
    """

    pii_type: PIIType
    start_offset: int
    end_offset: int
    confidence: float
    context_hint: str = field(default="", compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.start_offset < 0 or self.end_offset <= self.start_offset:
            raise ValueError(
                f"Invalid match span [{self.start_offset}, {self.end_offset})"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset

    def overlaps(self, other: "PIIMatch") -> bool:
        """True when the spans share at least one position (adjacency is not overlap)."""
        return self.start_offset < other.end_offset and other.start_offset < self.end_offset

    def value_in(self, text: str) -> str:
        """Return the matched substring of *text*."""
        return text[self.start_offset : self.end_offset]


@dataclass(frozen=True)
class StrategyResult:
    """Replacement produced for a single match."""

    replacement: str
    is_reversible: bool = False
    token_id: str | None = None


@dataclass(frozen=True)
class FieldAnonymizationResult:
    """Audit record for one anonymized match inside a field."""

    field_path: str
    pii_type: PIIType
    strategy_applied: AnonymizationStrategy
    confidence: float
    original_hash: str


@dataclass(frozen=True)
class Policy:
    """Per-invocation anonymization policy.

    Strategy values may be unknown strings arriving over the wire; those are
    dispatched as ``redact``.
    """

    default_strategy: AnonymizationStrategy | str = AnonymizationStrategy.REDACT
    strategy_overrides: Mapping[PIIType, AnonymizationStrategy | str] = field(
        default_factory=dict
    )
    compliance_frameworks: tuple[str, ...] = ()
    min_detection_confidence: float = 0.85


@dataclass
class AnonymizationMetrics:
    """Accumulator built once per invocation."""

    total_fields_processed: int = 0
    fields_anonymized: int = 0
    pii_detections: int = 0
    detection_breakdown: dict[PIIType, int] = field(default_factory=dict)
    average_confidence: float = 1.0
    processing_time_ms: float = 0.0


@dataclass(frozen=True)
class ComplianceViolation:
    """One rule a framework considers broken."""

    code: str
    description: str
    severity: Severity
    remediation: str = ""
    pii_type: PIIType | None = None
    field_path: str | None = None


@dataclass
class ComplianceCheckResult:
    """Verdict for one framework."""

    framework: str
    compliant: bool
    violations: list[ComplianceViolation] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    checked_at: str = ""


@dataclass(frozen=True)
class AnonymizationWarning:
    code: str
    message: str
    field_path: str | None = None


@dataclass(frozen=True)
class ComplianceAttestation:
    frameworks_satisfied: list[str]
    attestation_hash: str
    timestamp: str


@dataclass
class TraversalResult:
    """Output of the content traverser for one value."""

    anonymized_value: Any
    detections: list[PIIMatch] = field(default_factory=list)
    field_results: list[FieldAnonymizationResult] = field(default_factory=list)
    fields_processed: int = 0
    fields_anonymized: int = 0

    def absorb(self, child: "TraversalResult") -> None:
        """Concatenate a child's detections and results and add its counters."""
        self.detections.extend(child.detections)
        self.field_results.extend(child.field_results)
        self.fields_processed += child.fields_processed
        self.fields_anonymized += child.fields_anonymized


@dataclass
class AnonymizationRequest:
    """Input of the orchestrator."""

    content: Any
    content_format: ContentFormat = ContentFormat.JSON
    policy: Policy | None = None
    include_detection_details: bool = False
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class AnonymizationReport:
    """Output of the orchestrator."""

    request_id: str
    anonymized_content: Any
    metrics: AnonymizationMetrics
    compliance: ComplianceAttestation
    compliance_results: dict[str, ComplianceCheckResult] = field(default_factory=dict)
    field_results: list[FieldAnonymizationResult] | None = None
    warnings: list[AnonymizationWarning] = field(default_factory=list)
    confidence_score: float = 1.0
