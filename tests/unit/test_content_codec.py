from pathlib import Path

import pytest

from datavault.anonymization.models import ContentFormat
from datavault.processor.content_codec import ContentCodec
from datavault.processor.exceptions import ContentParseError, UnsupportedFormatError


@pytest.fixture()
def codec() -> ContentCodec:
    return ContentCodec()


class TestInferFormat:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("notes.txt", ContentFormat.TEXT),
            ("server.LOG", ContentFormat.TEXT),
            ("patients.json", ContentFormat.JSON),
            ("events.ndjson", ContentFormat.JSONL),
            ("rows.csv", ContentFormat.CSV),
        ],
    )
    def test_known_suffixes(self, codec: ContentCodec, name: str, expected: ContentFormat) -> None:
        assert codec.infer_format(Path(name)) is expected

    def test_unknown_suffix(self, codec: ContentCodec) -> None:
        with pytest.raises(UnsupportedFormatError, match="Cannot infer content format"):
            codec.infer_format(Path("scan.pdf"))


class TestParse:
    def test_text_is_returned_as_is(self, codec: ContentCodec) -> None:
        assert codec.parse("a\nb", ContentFormat.TEXT) == "a\nb"

    def test_json(self, codec: ContentCodec) -> None:
        assert codec.parse('{"a": [1, "x"]}', ContentFormat.JSON) == {"a": [1, "x"]}

    def test_invalid_json(self, codec: ContentCodec) -> None:
        with pytest.raises(ContentParseError, match="Invalid JSON"):
            codec.parse("{not json", ContentFormat.JSON)

    def test_jsonl_skips_blank_lines(self, codec: ContentCodec) -> None:
        text = '{"a": 1}\n\n"two"\n'
        assert codec.parse(text, ContentFormat.JSONL) == [{"a": 1}, "two"]

    def test_invalid_jsonl_reports_line(self, codec: ContentCodec) -> None:
        with pytest.raises(ContentParseError, match="line 2"):
            codec.parse('{"a": 1}\n{oops\n', ContentFormat.JSONL)

    def test_csv_rows_are_records(self, codec: ContentCodec) -> None:
        text = "name,email\nJane,jane@example.com\nJoe\n"
        assert codec.parse(text, ContentFormat.CSV) == [
            {"name": "Jane", "email": "jane@example.com"},
            {"name": "Joe", "email": ""},
        ]

    def test_csv_extra_fields(self, codec: ContentCodec) -> None:
        with pytest.raises(ContentParseError, match="more fields than the header"):
            codec.parse("a,b\n1,2,3\n", ContentFormat.CSV)


class TestSerialize:
    def test_text(self, codec: ContentCodec) -> None:
        assert codec.serialize("plain", ContentFormat.TEXT) == "plain"

    def test_json_keeps_non_ascii(self, codec: ContentCodec) -> None:
        assert codec.serialize({"n": "Müller"}, ContentFormat.JSON) == '{\n  "n": "Müller"\n}\n'

    def test_jsonl(self, codec: ContentCodec) -> None:
        assert codec.serialize([{"a": 1}, "x"], ContentFormat.JSONL) == '{"a": 1}\n"x"\n'

    def test_csv(self, codec: ContentCodec) -> None:
        rows = [{"name": "Jane", "email": "[EMAIL_REDACTED]"}]
        assert codec.serialize(rows, ContentFormat.CSV) == "name,email\nJane,[EMAIL_REDACTED]\n"

    def test_empty_csv(self, codec: ContentCodec) -> None:
        assert codec.serialize([], ContentFormat.CSV) == ""
