"""
Tests for the review insight CLI.

Usage:
    pytest tests/test_cli.py -v
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from src.orchestrator import cli


def make_record(review_id, text, score=3, days_ago=1):
    date = datetime.now(timezone.utc) - timedelta(days=days_ago)
    return {"id": review_id, "userName": "Ana", "text": text, "score": score, "date": date.isoformat()}


RECORDS = [
    make_record("1", "Please add a dark mode option", score=5),
    make_record("2", "Please add a dark mode option to the app", score=5),
    make_record("3", "This app is terrible, it keeps crashing and I lost all my data", score=1),
]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring the root logger during tests."""
    monkeypatch.setattr(cli, "setup_logging_from_settings", lambda verbose=False: None)
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)


@pytest.fixture
def reviews_file(tmp_path):
    path = tmp_path / "reviews.json"
    path.write_text(json.dumps(RECORDS), encoding="utf-8")
    return path


class TestLoadRecords:

    def test_plain_array(self, reviews_file):
        assert cli.load_records(str(reviews_file)) == RECORDS

    def test_wrapped_object(self, tmp_path):
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"reviews": RECORDS[:1]}), encoding="utf-8")
        assert cli.load_records(str(path)) == RECORDS[:1]

    def test_rejects_scalar(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("42", encoding="utf-8")
        with pytest.raises(ValueError):
            cli.load_records(str(path))


class TestAnalyzeCommand:
    """analyze: JSON result to a file or stdout, optional CSV."""

    def test_writes_output_and_csv(self, reviews_file, tmp_path):
        output = tmp_path / "result.json"
        csv_path = tmp_path / "reviews.csv"
        code = cli.main([
            "analyze", str(reviews_file),
            "--period", "month",
            "--output", str(output),
            "--csv", str(csv_path),
            "--csv-dialect", "standard",
        ])
        assert code == 0

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["summary"]["totalReviews"] == 3
        assert data["trends"]["overall"]["timePeriod"] == "month"
        assert data["job"]["status"] == "completed"
        assert data["topFeatures"][0]["count"] == 2
        assert csv_path.read_text(encoding="utf-8").startswith('"ID","User"')

    def test_prints_to_stdout(self, reviews_file, capsys):
        assert cli.main(["analyze", str(reviews_file), "--max-data-points", "4"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data["trends"]["overall"]["dataPoints"]) == 4

    def test_invalid_threshold(self, reviews_file, capsys):
        assert cli.main(["analyze", str(reviews_file), "--threshold", "2"]) == 2
        assert "Invalid options" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert cli.main(["analyze", str(tmp_path / "missing.json")]) == 1
        assert "Could not read" in capsys.readouterr().err


class TestSummaryCommand:

    def test_prints_digest(self, reviews_file, capsys):
        assert cli.main(["summary", str(reviews_file)]) == 0
        out = capsys.readouterr().out
        assert "REVIEW INSIGHTS: reviews.json" in out
        assert "Reviews: 3" in out
        assert "Top feature requests:" in out


class TestParser:

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "review-insights" in capsys.readouterr().out

    def test_period_choices(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["analyze", "x.json", "--period", "decade"])
