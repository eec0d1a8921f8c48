"""
Prediction assembly: fixture -> analysis -> market -> Prediction.

Also hosts the end-to-end prediction run used by the CLI and scheduler.
"""

import logging
import re
import time
from collections import Counter
from typing import Optional

from safescore.fetcher import FootballDataClient
from safescore.models import Fixture, Prediction, RiskProfile
from safescore.scorer import DEFAULT_WEIGHTS, ScoringWeights, analyze_match
from safescore.selector import DEFAULT_THRESHOLDS, SelectorThresholds, apply_confidence_bonus, select_market

# Configure module logger
logger = logging.getLogger(__name__)

_PREDICTION_ID = re.compile(r"^pred-(\d+)-\d+-\d+$")


def extract_match_id(prediction_id: str) -> Optional[int]:
    """
    Recover the feed match id embedded in a prediction id.

    Returns:
        Match id, or None if the id does not follow ``pred-{match}-{ts}-{index}``
        or carries the placeholder id 0
    """
    match = _PREDICTION_ID.match(prediction_id or "")
    if not match:
        return None
    match_id = int(match.group(1))
    return match_id or None


def generate_prediction(
    fixture: Fixture,
    index: int,
    profile: Optional[RiskProfile] = None,
    timestamp_ms: Optional[int] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    thresholds: SelectorThresholds = DEFAULT_THRESHOLDS
) -> Prediction:
    """
    Build the prediction for a single fixture.

    Args:
        fixture: Fixture, ideally enriched with standings statistics
        index: Position of the fixture in the batch, part of the id
        profile: Optional risk-profile hint for the market selector
        timestamp_ms: Creation time in milliseconds (default: now)
        weights: Scoring configuration
        thresholds: Selector configuration

    Returns:
        Prediction with a Market bet type and a confidence in [30, 99]
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    analysis = analyze_match(fixture, weights)
    market = select_market(analysis, profile, thresholds)
    confidence = apply_confidence_bonus(market, analysis.confidence, thresholds)

    return Prediction(
        id=f"pred-{fixture.match_id}-{timestamp_ms}-{index}",
        team1=fixture.home_team,
        team2=fixture.away_team,
        bet_type=market,
        confidence=confidence,
        league=fixture.league or "Unknown",
        match_time=fixture.kickoff or "TBD",
        match_id=fixture.match_id or None,
    )


def generate_predictions(
    fixtures: list[Fixture],
    profile: Optional[RiskProfile] = None
) -> list[Prediction]:
    """Generate one prediction per fixture and log the batch distribution."""
    if not fixtures:
        return []

    profile_label = profile.value if profile else "generic"
    logger.info(f"Generating {len(fixtures)} predictions with profile: {profile_label}")

    timestamp_ms = int(time.time() * 1000)
    predictions = [
        generate_prediction(fixture, idx, profile, timestamp_ms)
        for idx, fixture in enumerate(fixtures)
    ]

    bet_type_counts = Counter(p.bet_type.value for p in predictions)
    avg_confidence = round(sum(p.confidence for p in predictions) / len(predictions))

    logger.info(f"Bet types: {dict(bet_type_counts)}")
    logger.info(f"Avg confidence: {avg_confidence}")

    return predictions


def run_prediction_pipeline(
    client: FootballDataClient,
    leagues: list[str],
    day: str = "today",
    profile: Optional[RiskProfile] = None
) -> list[Prediction]:
    """
    Fetch fixtures, enrich them with standings and generate predictions.

    Finding no fixtures is not an error: an empty list is returned so the
    caller can report that no matches were found.
    """
    fixtures = client.fetch_fixtures(leagues, day)
    if not fixtures:
        logger.info("No fixtures found, nothing to predict")
        return []

    logger.info(f"Found {len(fixtures)} fixtures, fetching standings")
    fixtures = client.enrich_fixtures(fixtures)

    return generate_predictions(fixtures, profile)
