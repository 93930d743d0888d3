from collections.abc import Sequence

from datavault.anonymization.engine import AnonymizationEngine
from datavault.anonymization.factory import AnonymizationEngineFactory
from datavault.config.settings import Settings
from datavault.logging.logger import Log
from datavault.processor.content_codec import ContentCodec
from datavault.processor.file_loader import FileLoader
from datavault.processor.models import ProcessingJob
from datavault.processor.pipeline import PipelineContext, PipelineStep
from datavault.processor.report_serializer import ReportSerializer
from datavault.processor.steps import (
    AnonymizeStep,
    LoadContentStep,
    LogFailureStep,
    ParseContentStep,
    ResolvePolicyStep,
    SerializeOutputStep,
    WriteOutputStep,
)


class Processor:
    """Runs a processing job through an ordered list of pipeline steps.

    Pipeline: load -> resolve policy -> parse -> anonymize -> serialize -> write.
    On failure the error is recorded on the context, the failure step runs and
    the original exception propagates.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        failed_step: PipelineStep | None = None,
    ) -> None:
        self._steps = list(steps)
        self._failed_step = failed_step

    def process(self, job: ProcessingJob) -> PipelineContext:
        Log.info(f"Processing {job.input_path}")
        context = PipelineContext(job=job)
        try:
            for step in self._steps:
                context = step.run(context)
        except Exception as exc:
            context.error_message = str(exc)
            if self._failed_step is not None:
                self._failed_step.run(context)
            raise
        return context


def build_processor(
    settings: Settings,
    engine: AnonymizationEngine | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    engine = engine or AnonymizationEngineFactory.create(settings)
    file_loader = FileLoader()
    codec = ContentCodec()
    return Processor(
        steps=[
            LoadContentStep(file_loader),
            ResolvePolicyStep(file_loader, engine),
            ParseContentStep(codec),
            AnonymizeStep(engine),
            SerializeOutputStep(codec, ReportSerializer()),
            WriteOutputStep(file_loader),
        ],
        failed_step=LogFailureStep(),
    )
