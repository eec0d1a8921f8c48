"""Unit tests for report formatting."""

from safescore.models import Market, Prediction
from safescore.reporter import (
    format_accuracy,
    generate_daily_report,
    generate_prediction_report,
    generate_settlement_report,
)
from safescore.config import Config
from safescore.settlement import SettlementSummary


def _prediction(index, market=Market.OVER_0_5, confidence=85, match_time="2026-01-10T15:00:00Z") -> Prediction:
    return Prediction(
        id=f"pred-{index}-1700000000000-{index}",
        team1=f"Home {index}",
        team2=f"Away {index}",
        bet_type=market,
        confidence=confidence,
        league="Premier League",
        match_time=match_time,
        match_id=index,
    )


class TestPredictionReport:

    def test_contains_every_prediction(self):
        report = generate_prediction_report([
            _prediction(1),
            _prediction(2, Market.HOME_WIN_OR_DRAW, 93),
        ])

        assert "SAFESCORE - PREDICTION SLIP" in report
        assert "Matches: 2" in report
        assert "[1] Home 1 vs Away 1" in report
        assert "[2] Home 2 vs Away 2" in report
        assert "Pick: Home Team to Win or Draw" in report
        assert "Confidence: 93%" in report
        assert "Average confidence: 89%" in report

    def test_kickoff_is_rendered_in_utc(self):
        report = generate_prediction_report([_prediction(1)])
        assert "Kickoff: 2026-01-10 15:00 UTC" in report

    def test_unparseable_kickoff_shown_as_is(self):
        report = generate_prediction_report([_prediction(1, match_time="TBD")])
        assert "Kickoff: TBD" in report

    def test_empty_report(self):
        report = generate_prediction_report([])
        assert "Matches: 0" in report
        assert "No matches found." in report

    def test_report_is_saved_to_file(self, tmp_path):
        output = tmp_path / "reports" / "slip.txt"
        report = generate_prediction_report([_prediction(1)], output)

        assert output.read_text(encoding="utf-8") == report

    def test_daily_report_uses_report_directory(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "REPORT_OUTPUT_DIR", tmp_path)

        generate_daily_report([_prediction(1)])

        files = list(tmp_path.glob("predictions_*.txt"))
        assert len(files) == 1


class TestSettlementReport:

    def test_counts_and_accuracy(self):
        summary = SettlementSummary(checked=3, won=1, lost=1, pending=1, unmatched=1, dates=["2026-01-10"])
        accuracy = {"total": 5, "won": 2, "lost": 1, "pending": 1, "postponed": 1, "accuracy": 67}

        report = generate_settlement_report(summary, accuracy)

        assert "Checked: 3" in report
        assert "Won: 1" in report
        assert "Lost: 1" in report
        assert "Still pending: 1 (1 without a matching result)" in report
        assert "Dates: 2026-01-10" in report
        assert "Accuracy: 67%" in report

    def test_without_accuracy(self):
        report = generate_settlement_report(SettlementSummary())
        assert "Checked: 0" in report
        assert "OVERALL ACCURACY" not in report

    def test_format_accuracy_defaults(self):
        text = format_accuracy({})
        assert "Total predictions: 0" in text
        assert "Accuracy: 0%" in text
