"""Parses payload text into engine content shapes and serializes it back.

| Format | Parsed shape                          |
|--------|---------------------------------------|
| text   | the string itself                     |
| json   | whatever the document holds           |
| jsonl  | list with one value per non-blank line|
| csv    | list of records keyed by header       |
"""

import csv
import io
import json
from pathlib import Path
from typing import Any, ClassVar

from datavault.anonymization.models import ContentFormat
from datavault.processor.exceptions import ContentParseError, UnsupportedFormatError


class ContentCodec:
    SUFFIX_FORMATS: ClassVar[dict[str, ContentFormat]] = {
        ".txt": ContentFormat.TEXT,
        ".text": ContentFormat.TEXT,
        ".log": ContentFormat.TEXT,
        ".md": ContentFormat.TEXT,
        ".json": ContentFormat.JSON,
        ".jsonl": ContentFormat.JSONL,
        ".ndjson": ContentFormat.JSONL,
        ".csv": ContentFormat.CSV,
    }

    def infer_format(self, path: Path) -> ContentFormat:
        fmt = self.SUFFIX_FORMATS.get(path.suffix.lower())
        if fmt is None:
            raise UnsupportedFormatError(
                f"Cannot infer content format from '{path.name}'; "
                f"pass one of: {', '.join(f.value for f in ContentFormat)}"
            )
        return fmt

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, text: str, fmt: ContentFormat) -> Any:
        if fmt is ContentFormat.TEXT:
            return text
        if fmt is ContentFormat.JSON:
            return self._parse_json(text)
        if fmt is ContentFormat.JSONL:
            return self._parse_jsonl(text)
        if fmt is ContentFormat.CSV:
            return self._parse_csv(text)
        raise UnsupportedFormatError(f"Unsupported content format: {fmt}")

    def _parse_json(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ContentParseError(f"Invalid JSON: {exc}") from exc

    def _parse_jsonl(self, text: str) -> list[Any]:
        records: list[Any] = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ContentParseError(f"Invalid JSON on line {line_no}: {exc}") from exc
        return records

    def _parse_csv(self, text: str) -> list[dict[str, str]]:
        reader = csv.DictReader(io.StringIO(text))
        rows: list[dict[str, str]] = []
        try:
            for row in reader:
                if None in row:
                    raise ContentParseError(
                        f"CSV row {reader.line_num} has more fields than the header"
                    )
                rows.append({key: value if value is not None else "" for key, value in row.items()})
        except csv.Error as exc:
            raise ContentParseError(f"Invalid CSV: {exc}") from exc
        return rows

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self, content: Any, fmt: ContentFormat) -> str:
        if fmt is ContentFormat.TEXT:
            return content if isinstance(content, str) else json.dumps(content, ensure_ascii=False)
        if fmt is ContentFormat.JSON:
            return json.dumps(content, ensure_ascii=False, indent=2) + "\n"
        if fmt is ContentFormat.JSONL:
            return "".join(json.dumps(item, ensure_ascii=False) + "\n" for item in content)
        if fmt is ContentFormat.CSV:
            return self._serialize_csv(content)
        raise UnsupportedFormatError(f"Unsupported content format: {fmt}")

    def _serialize_csv(self, rows: list[dict[str, Any]]) -> str:
        if not rows:
            return ""
        fieldnames = list(dict.fromkeys(key for row in rows for key in row))
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()
