from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from datavault.anonymization.models import AnonymizationReport, ContentFormat, Policy
from datavault.processor.models import ProcessingJob


@dataclass(slots=True)
class PipelineContext:
    job: ProcessingJob
    raw_text: str = ""
    content_format: ContentFormat | None = None
    content: Any = None
    policy: Policy | None = None
    report: AnonymizationReport | None = None
    output: str = ""
    error_message: str = ""


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
