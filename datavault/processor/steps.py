import asyncio
import json

from datavault.anonymization.engine import AnonymizationEngine
from datavault.anonymization.exceptions import PolicyValidationError
from datavault.anonymization.models import AnonymizationRequest
from datavault.anonymization.policy_validator import build_policy
from datavault.logging.logger import Log
from datavault.processor.content_codec import ContentCodec
from datavault.processor.file_loader import FileLoader
from datavault.processor.pipeline import PipelineContext, PipelineStep
from datavault.processor.report_serializer import ReportSerializer


class LoadContentStep(PipelineStep):
    def __init__(self, file_loader: FileLoader) -> None:
        self._file_loader = file_loader

    def run(self, context: PipelineContext) -> PipelineContext:
        context.raw_text = self._file_loader.load_text(context.job.input_path)
        Log.info(f"Loaded {len(context.raw_text)} chars from {context.job.input_path.name}")
        return context


class ResolvePolicyStep(PipelineStep):
    """Merges the policy file and per-run overrides over the engine's default policy."""

    def __init__(self, file_loader: FileLoader, engine: AnonymizationEngine) -> None:
        self._file_loader = file_loader
        self._engine = engine

    def run(self, context: PipelineContext) -> PipelineContext:
        document: dict[str, object] = {}
        if context.job.policy_path is not None:
            raw = self._file_loader.load_text(context.job.policy_path)
            try:
                document = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise PolicyValidationError(f"Policy file is not valid JSON: {exc}") from exc
            if not isinstance(document, dict):
                raise PolicyValidationError("Policy must be an object")
        document = {**document, **context.job.policy_overrides}
        context.policy = build_policy(document, self._engine.default_policy)
        return context


class ParseContentStep(PipelineStep):
    def __init__(self, codec: ContentCodec) -> None:
        self._codec = codec

    def run(self, context: PipelineContext) -> PipelineContext:
        fmt = context.job.content_format or self._codec.infer_format(context.job.input_path)
        context.content_format = fmt
        context.content = self._codec.parse(context.raw_text, fmt)
        Log.debug(f"Parsed {context.job.input_path.name} as {fmt.value}")
        return context


class AnonymizeStep(PipelineStep):
    def __init__(self, engine: AnonymizationEngine) -> None:
        self._engine = engine

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.content_format is None:
            raise ValueError("PipelineContext.content_format must be set before anonymization")
        request = AnonymizationRequest(
            content=context.content,
            content_format=context.content_format,
            policy=context.policy,
            include_detection_details=context.job.include_detection_details,
        )
        context.report = asyncio.run(self._engine.anonymize(request))
        Log.info(
            f"Anonymized {context.job.input_path.name}: "
            f"{context.report.metrics.pii_detections} detections"
        )
        return context


class SerializeOutputStep(PipelineStep):
    def __init__(self, codec: ContentCodec, serializer: ReportSerializer) -> None:
        self._codec = codec
        self._serializer = serializer

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.report is None or context.content_format is None:
            raise ValueError("PipelineContext.report must be set before serialization")
        if context.job.content_only:
            context.output = self._codec.serialize(
                context.report.anonymized_content, context.content_format
            )
        else:
            payload = self._serializer.serialize(context.report)
            context.output = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
        return context


class WriteOutputStep(PipelineStep):
    """Writes the output to the job's output path; without one, leaves it on the context."""

    def __init__(self, file_loader: FileLoader) -> None:
        self._file_loader = file_loader

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.job.output_path is not None:
            self._file_loader.write_text(context.job.output_path, context.output)
            Log.info(f"Wrote {len(context.output)} chars to {context.job.output_path}")
        return context


class LogFailureStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        Log.error(
            f"Processing {context.job.input_path.name} failed: {context.error_message}"
        )
        return context
