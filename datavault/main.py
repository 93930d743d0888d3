"""Command-line entry point: ``datavault anonymize`` and ``datavault detect``."""

from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from datavault.anonymization.exceptions import AnonymizationError
from datavault.anonymization.models import ContentFormat
from datavault.config.settings import Settings
from datavault.logging.logger import Log
from datavault.processor.exceptions import ProcessorError
from datavault.processor.models import ProcessingJob
from datavault.processor.pipeline import PipelineContext
from datavault.processor.processor import build_processor

_FORMAT_CHOICES = [fmt.value for fmt in ContentFormat]


def _policy_options(func: Any) -> Any:
    options = [
        click.option(
            "--format",
            "fmt",
            type=click.Choice(_FORMAT_CHOICES),
            default=None,
            help="Content format (inferred from the file suffix when omitted)",
        ),
        click.option(
            "--policy",
            "policy_path",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="JSON policy document",
        ),
        click.option("--strategy", default=None, help="Default strategy for this run"),
        click.option(
            "--framework",
            "frameworks",
            multiple=True,
            help="Compliance framework to check (repeatable)",
        ),
        click.option(
            "--min-confidence",
            type=click.FloatRange(0.0, 1.0),
            default=None,
            help="Minimum detection confidence",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _overrides(
    strategy: str | None, frameworks: tuple[str, ...], min_confidence: float | None
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if strategy is not None:
        overrides["default_strategy"] = strategy
    if frameworks:
        overrides["compliance_frameworks"] = list(frameworks)
    if min_confidence is not None:
        overrides["min_detection_confidence"] = min_confidence
    return overrides


def _run(ctx: click.Context, job: ProcessingJob) -> PipelineContext:
    try:
        processor = build_processor(ctx.obj["settings"], ctx.obj.get("engine"))
        return processor.process(job)
    except (ProcessorError, AnonymizationError) as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """Detect and anonymize PII in text, JSON, JSONL and CSV files."""
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = Settings()
        except ValidationError as exc:
            raise click.ClickException(f"Invalid configuration: {exc}") from exc
    Log.configure(ctx.obj["settings"].log_level)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_policy_options
@click.option("--details", is_flag=True, default=False, help="Include per-field results")
@click.option(
    "--content-only",
    is_flag=True,
    default=False,
    help="Write only the anonymized content, in the input format",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout",
)
@click.pass_context
def anonymize(
    ctx: click.Context,
    input_path: Path,
    fmt: str | None,
    policy_path: Path | None,
    strategy: str | None,
    frameworks: tuple[str, ...],
    min_confidence: float | None,
    details: bool,
    content_only: bool,
    output_path: Path | None,
) -> None:
    """Anonymize INPUT_PATH and print the report (or the anonymized content)."""
    settings: Settings = ctx.obj["settings"]
    job = ProcessingJob(
        input_path=input_path,
        content_format=ContentFormat(fmt) if fmt else None,
        policy_path=policy_path,
        policy_overrides=_overrides(strategy, frameworks, min_confidence),
        include_detection_details=details or settings.include_detection_details,
        content_only=content_only,
        output_path=output_path,
    )
    context = _run(ctx, job)
    if output_path is None:
        click.echo(context.output, nl=False)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_policy_options
@click.pass_context
def detect(
    ctx: click.Context,
    input_path: Path,
    fmt: str | None,
    policy_path: Path | None,
    strategy: str | None,
    frameworks: tuple[str, ...],
    min_confidence: float | None,
) -> None:
    """List PII found in INPUT_PATH: field path, type, confidence and strategy.

    Raw values are never printed.
    """
    job = ProcessingJob(
        input_path=input_path,
        content_format=ContentFormat(fmt) if fmt else None,
        policy_path=policy_path,
        policy_overrides=_overrides(strategy, frameworks, min_confidence),
        include_detection_details=True,
    )
    context = _run(ctx, job)
    results = (context.report.field_results if context.report else None) or []
    if not results:
        click.echo("No PII detected.")
        return
    for result in results:
        click.echo(
            f"{result.field_path or '<root>'}\t{result.pii_type.value}\t"
            f"{result.confidence:.2f}\t{result.strategy_applied.value}"
        )
    click.echo(f"{len(results)} detection(s)")


if __name__ == "__main__":
    main()
