"""Validates a raw policy document and builds a Policy."""

from typing import Any

from datavault.anonymization.compliance import normalize_framework
from datavault.anonymization.exceptions import PolicyValidationError
from datavault.anonymization.models import AnonymizationStrategy, PIIType, Policy
from datavault.logging.logger import Log

_KNOWN_FIELDS = frozenset(
    {
        "default_strategy",
        "strategy_overrides",
        "compliance_frameworks",
        "min_detection_confidence",
    }
)


def build_policy(data: dict[str, Any], defaults: Policy | None = None) -> Policy:
    """Validate a parsed policy document and merge it over *defaults*.

    Missing fields keep their default. Unknown strategy and framework names
    are accepted (they fall back to redact / are ignored at run time) but are
    logged.

    Raises:
        PolicyValidationError: on any structural or range failure.
    """
    if not isinstance(data, dict):
        raise PolicyValidationError("Policy must be an object")
    _reject_unknown_fields(data)
    defaults = defaults or Policy()

    return Policy(
        default_strategy=_build_strategy(
            data.get("default_strategy", defaults.default_strategy), "default_strategy"
        ),
        strategy_overrides=_build_overrides(
            data.get("strategy_overrides", defaults.strategy_overrides)
        ),
        compliance_frameworks=_build_frameworks(
            data.get("compliance_frameworks", defaults.compliance_frameworks)
        ),
        min_detection_confidence=_build_confidence(
            data.get("min_detection_confidence", defaults.min_detection_confidence)
        ),
    )


def _reject_unknown_fields(data: dict[str, Any]) -> None:
    unknown = sorted(set(data) - _KNOWN_FIELDS)
    if unknown:
        raise PolicyValidationError(f"Unknown policy field(s): {', '.join(unknown)}")


def _build_strategy(raw: Any, location: str) -> AnonymizationStrategy | str:
    if not isinstance(raw, str) or not raw.strip():
        raise PolicyValidationError(f"'{location}' must be a non-empty string")
    strategy = AnonymizationStrategy.parse(raw)
    if strategy is None:
        Log.warning(f"Unknown strategy '{raw}' at '{location}' will be applied as redact")
        return raw
    return strategy


def _build_overrides(raw: Any) -> dict[PIIType, AnonymizationStrategy | str]:
    if not isinstance(raw, dict):
        raise PolicyValidationError("'strategy_overrides' must be an object")
    overrides: dict[PIIType, AnonymizationStrategy | str] = {}
    for key, value in raw.items():
        pii_type = _build_pii_type(key)
        overrides[pii_type] = _build_strategy(value, f"strategy_overrides.{pii_type.value}")
    return overrides


def _build_pii_type(raw: Any) -> PIIType:
    if isinstance(raw, PIIType):
        return raw
    if not isinstance(raw, str):
        raise PolicyValidationError(f"PII type must be a string, got {raw!r}")
    try:
        return PIIType(raw.strip().lower())
    except ValueError:
        raise PolicyValidationError(f"Unknown PII type: {raw!r}") from None


def _build_frameworks(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise PolicyValidationError("'compliance_frameworks' must be a list of strings")
    frameworks: list[str] = []
    for i, item in enumerate(raw):
        if not isinstance(item, str) or not item.strip():
            raise PolicyValidationError(
                f"'compliance_frameworks[{i}]' must be a non-empty string"
            )
        name = item.strip().lower()
        if normalize_framework(name) is None:
            Log.warning(f"Unknown compliance framework '{name}' will be ignored")
        if name not in frameworks:
            frameworks.append(name)
    return tuple(frameworks)


def _build_confidence(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise PolicyValidationError("'min_detection_confidence' must be a number")
    if not 0.0 <= raw <= 1.0:
        raise PolicyValidationError(
            f"'min_detection_confidence' must be within [0, 1], got {raw}"
        )
    return float(raw)
