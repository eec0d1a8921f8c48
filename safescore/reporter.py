"""
Reporter module for generating readable prediction slips and settlement reports.

This module formats predictions and settlement outcomes as plain text for
the console and for report files.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from safescore.config import Config
from safescore.models import Prediction
from safescore.settlement import SettlementSummary

# Configure module logger
logger = logging.getLogger(__name__)

WIDTH = 80


def generate_prediction_report(
    predictions: list[Prediction],
    output_file: Optional[Path] = None
) -> str:
    """
    Generate a formatted prediction slip.

    Args:
        predictions: Predictions to include, in display order
        output_file: Optional path to save report to file

    Returns:
        Formatted report string
    """
    header = _generate_header("PREDICTION SLIP", f"Matches: {len(predictions)}")
    summary = _generate_prediction_summary(predictions)
    body = _generate_predictions_section(predictions)

    report = f"{header}\n\n{summary}\n\n{body}"

    if output_file:
        _save_report_to_file(report, output_file)

    return report


def generate_settlement_report(
    summary: SettlementSummary,
    accuracy: Optional[dict] = None,
    output_file: Optional[Path] = None
) -> str:
    """
    Generate a report of a settlement run and overall accuracy.

    Args:
        summary: Counts from settle_pending()
        accuracy: Statistics from HistoryStorage.get_accuracy(), if available
        output_file: Optional path to save report to file

    Returns:
        Formatted report string
    """
    header = _generate_header("SETTLEMENT REPORT", f"Dates processed: {len(summary.dates)}")

    lines = [
        "THIS RUN",
        "-" * WIDTH,
        f"Checked: {summary.checked}",
        f"  - Won: {summary.won}",
        f"  - Lost: {summary.lost}",
        f"  - Still pending: {summary.pending} ({summary.unmatched} without a matching result)",
    ]
    if summary.dates:
        lines.append(f"Dates: {', '.join(summary.dates)}")

    if accuracy:
        lines.extend(["", format_accuracy(accuracy)])

    report = f"{header}\n\n" + "\n".join(lines)

    if output_file:
        _save_report_to_file(report, output_file)

    return report


def format_accuracy(accuracy: dict) -> str:
    """Format HistoryStorage.get_accuracy() output as a text block."""
    lines = [
        "OVERALL ACCURACY",
        "-" * WIDTH,
        f"Total predictions: {accuracy.get('total', 0)}",
        f"  - Won: {accuracy.get('won', 0)}",
        f"  - Lost: {accuracy.get('lost', 0)}",
        f"  - Pending: {accuracy.get('pending', 0)}",
        f"  - Postponed: {accuracy.get('postponed', 0)}",
        f"Accuracy: {accuracy.get('accuracy', 0)}%",
    ]
    return "\n".join(lines)


def _generate_header(title: str, subtitle: str) -> str:
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    header = f"""
{'='*WIDTH}
  SAFESCORE - {title}
{'='*WIDTH}
Generated: {now}
{subtitle}
{'='*WIDTH}
"""
    return header.strip()


def _generate_prediction_summary(predictions: list[Prediction]) -> str:
    if not predictions:
        return "No matches found."

    total = len(predictions)
    avg_confidence = sum(p.confidence for p in predictions) / total
    markets = Counter(p.bet_type.value for p in predictions)

    lines = [
        "SUMMARY",
        "-" * WIDTH,
        f"Predictions: {total}",
        f"Average confidence: {avg_confidence:.0f}%",
        "Markets:",
    ]
    for market, count in markets.most_common():
        lines.append(f"  - {market}: {count}")

    return "\n".join(lines)


def _generate_predictions_section(predictions: list[Prediction]) -> str:
    if not predictions:
        return "No predictions to display."

    sections = ["PREDICTIONS", "-" * WIDTH]

    for idx, prediction in enumerate(predictions, 1):
        sections.append(_format_prediction(idx, prediction))
        sections.append("")

    return "\n".join(sections)


def _format_prediction(rank: int, prediction: Prediction) -> str:
    return "\n".join([
        f"[{rank}] {prediction.team1} vs {prediction.team2}",
        f"    League: {prediction.league}",
        f"    Kickoff: {_format_kickoff(prediction.match_time)}",
        f"    Pick: {prediction.bet_type.value}",
        f"    Confidence: {prediction.confidence}%",
    ])


def _format_kickoff(match_time: str) -> str:
    """Render an ISO-8601 kickoff in UTC; anything unparseable is shown as is."""
    try:
        kickoff = datetime.fromisoformat(match_time.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return match_time or "TBD"
    return kickoff.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _save_report_to_file(report: str, file_path: Path) -> None:
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(report, encoding="utf-8")
        logger.info(f"Report saved to {file_path}")
    except OSError as e:
        logger.error(f"Error saving report to {file_path}: {e}", exc_info=True)


def generate_daily_report(predictions: list[Prediction], save_to_file: bool = True) -> str:
    """
    Generate the prediction slip and save it under Config.REPORT_OUTPUT_DIR
    with a timestamped filename. Used by `predict --save`.
    """
    output_file = None
    if save_to_file:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        output_file = Config.REPORT_OUTPUT_DIR / f"predictions_{timestamp}.txt"

    return generate_prediction_report(predictions, output_file)
