from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from datavault.anonymization.models import ContentFormat


@dataclass(frozen=True)
class ProcessingJob:
    """One file to anonymize and how to report on it."""

    input_path: Path
    content_format: ContentFormat | None = None  # None: infer from the file suffix
    policy_path: Path | None = None
    policy_overrides: dict[str, Any] = field(default_factory=dict)
    include_detection_details: bool = False
    content_only: bool = False
    output_path: Path | None = None
