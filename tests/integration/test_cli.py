import json
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from datavault.config.settings import Settings
from datavault.main import main

CONTACT = "Contact john.doe@example.com or call 555-123-4567"
WriteFile = Callable[[str, str], Path]


def _invoke(settings: Settings, *args: str) -> Result:
    return CliRunner().invoke(main, list(args), obj={"settings": settings})


@pytest.mark.integration
class TestAnonymizeCommand:
    def test_prints_json_report(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("contacts.json", json.dumps({"contact": CONTACT, "age": 41}))

        result = _invoke(test_settings, "anonymize", str(path))

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["anonymized_content"] == {
            "contact": "Contact [EMAIL_REDACTED] or call [PHONE_NUMBER_REDACTED]",
            "age": 41,
        }
        assert report["metrics"]["pii_detections"] == 2
        assert report["metrics"]["detection_breakdown"] == {"email": 1, "phone_number": 1}
        assert "field_results" not in report
        assert "john.doe" not in result.output

    def test_content_only_text(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("note.txt", CONTACT)
        result = _invoke(test_settings, "anonymize", str(path), "--content-only")
        assert result.exit_code == 0, result.output
        assert result.output == "Contact [EMAIL_REDACTED] or call [PHONE_NUMBER_REDACTED]"

    def test_content_only_csv(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("people.csv", "name,email\nJane,jane@example.com\n")
        result = _invoke(test_settings, "anonymize", str(path), "--content-only")
        assert result.exit_code == 0, result.output
        assert result.output == "name,email\nJane,[EMAIL_REDACTED]\n"

    def test_output_file(
        self, test_settings: Settings, write_file: WriteFile, tmp_path: Path
    ) -> None:
        path = write_file("note.txt", CONTACT)
        out = tmp_path / "out" / "report.json"

        result = _invoke(test_settings, "anonymize", str(path), "--output", str(out))

        assert result.exit_code == 0, result.output
        assert result.output == ""
        assert json.loads(out.read_text(encoding="utf-8"))["metrics"]["pii_detections"] == 2

    def test_details(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("contacts.json", json.dumps({"user": {"emails": ["a.b@example.com"]}}))
        result = _invoke(test_settings, "anonymize", str(path), "--details")
        assert result.exit_code == 0, result.output
        [field] = json.loads(result.output)["field_results"]
        assert field["field_path"] == "user.emails[0]"
        assert field["pii_type"] == "email"
        assert len(field["original_hash"]) == 16

    def test_strategy_option(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("card.json", json.dumps({"card": "4111-1111-1111-1111"}))
        result = _invoke(test_settings, "anonymize", str(path), "--strategy", "mask")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["anonymized_content"] == {"card": "*" * 19}

    def test_framework_option(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("note.txt", "ssn 123-45-6789")
        result = _invoke(test_settings, "anonymize", str(path), "--framework", "GDPR")
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["compliance_results"]["gdpr"]["compliant"] is True
        assert report["compliance"]["frameworks_satisfied"] == ["gdpr"]

    def test_policy_file(self, test_settings: Settings, write_file: WriteFile) -> None:
        policy = write_file(
            "policy.json", json.dumps({"strategy_overrides": {"email": "hash"}})
        )
        path = write_file("note.txt", "mail a.b@example.com")

        result = _invoke(test_settings, "anonymize", str(path), "--policy", str(policy))

        assert result.exit_code == 0, result.output
        content = json.loads(result.output)["anonymized_content"]
        assert content.startswith("mail HASH_")

    def test_explicit_format(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("note.dat", CONTACT)
        args = ["anonymize", str(path), "--format", "text", "--content-only"]
        result = _invoke(test_settings, *args)
        assert result.exit_code == 0, result.output
        assert "[EMAIL_REDACTED]" in result.output


@pytest.mark.integration
class TestAnonymizeErrors:
    def test_unknown_suffix(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("note.dat", CONTACT)
        result = _invoke(test_settings, "anonymize", str(path))
        assert result.exit_code == 1
        assert "Error: Cannot infer content format" in result.output

    def test_invalid_json(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("broken.json", "{not json")
        result = _invoke(test_settings, "anonymize", str(path))
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_invalid_policy(self, test_settings: Settings, write_file: WriteFile) -> None:
        policy = write_file("policy.json", json.dumps({"min_detection_confidence": 3}))
        path = write_file("note.txt", CONTACT)
        result = _invoke(test_settings, "anonymize", str(path), "--policy", str(policy))
        assert result.exit_code == 1
        assert "min_detection_confidence" in result.output

    def test_unsupported_top_level_content(
        self, test_settings: Settings, write_file: WriteFile
    ) -> None:
        path = write_file("number.json", "42")
        result = _invoke(test_settings, "anonymize", str(path))
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_min_confidence_out_of_range(
        self, test_settings: Settings, write_file: WriteFile
    ) -> None:
        path = write_file("note.txt", CONTACT)
        result = _invoke(test_settings, "anonymize", str(path), "--min-confidence", "2")
        assert result.exit_code == 2

    def test_missing_input(self, test_settings: Settings, tmp_path: Path) -> None:
        result = _invoke(test_settings, "anonymize", str(tmp_path / "missing.txt"))
        assert result.exit_code == 2

    def test_invalid_configuration(
        self, monkeypatch: pytest.MonkeyPatch, write_file: WriteFile
    ) -> None:
        monkeypatch.setenv("MIN_DETECTION_CONFIDENCE", "5")
        path = write_file("note.txt", CONTACT)
        result = CliRunner().invoke(main, ["anonymize", str(path)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


@pytest.mark.integration
class TestDetectCommand:
    def test_lists_detections_without_values(
        self, test_settings: Settings, write_file: WriteFile
    ) -> None:
        path = write_file("note.txt", CONTACT)

        result = _invoke(test_settings, "detect", str(path))

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [
            "<root>\temail\t0.95\tredact",
            "<root>\tphone_number\t1.00\tredact",
            "2 detection(s)",
        ]
        assert "john.doe" not in result.output
        assert "555-123-4567" not in result.output

    def test_field_paths_and_strategy(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("rows.jsonl", '{"ip": "8.8.8.8"}\n{"ip": "1.1.1.1"}\n')
        result = _invoke(test_settings, "detect", str(path), "--strategy", "generalize")
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "[0].ip\tip_address\t0.92\tgeneralize"
        assert lines[1] == "[1].ip\tip_address\t0.92\tgeneralize"

    def test_clean_file(self, test_settings: Settings, write_file: WriteFile) -> None:
        path = write_file("note.txt", "nothing to see")
        result = _invoke(test_settings, "detect", str(path))
        assert result.exit_code == 0
        assert result.output == "No PII detected.\n"
