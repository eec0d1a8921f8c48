"""
Data models for the SafeScore prediction pipeline.

This module defines the core dataclasses and closed enumerations used
throughout the application for representing fixtures, team statistics,
predictions, match results and persisted prediction history.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from safescore.utils import safe_int


class Market(str, Enum):
    """
    Closed set of betting markets a prediction can commit to.

    Shared contract between the market selector and the settlement
    evaluator: every value produced by one is understood by the other.
    """
    HOME_WIN_OR_DRAW = "Home Team to Win or Draw"
    AWAY_WIN_OR_DRAW = "Away Team to Win or Draw"
    HOME_WIN = "Home Team to Win"
    AWAY_WIN = "Away Team to Win"
    DRAW = "Draw"
    OVER_0_5 = "Over 0.5 Goals"
    OVER_1_5 = "Over 1.5 Goals"
    OVER_2_5 = "Over 2.5 Goals"
    UNDER_1_5 = "Under 1.5 Goals"
    UNDER_2_5 = "Under 2.5 Goals"
    UNDER_3_5 = "Under 3.5 Goals"
    BTTS_YES = "Both Teams to Score: Yes"
    BTTS_NO = "Both Teams to Score: No"
    HIGHEST_HALF_FIRST = "Highest Scoring Half: 1st"
    HIGHEST_HALF_SECOND = "Highest Scoring Half: 2nd"
    HANDICAP_HOME_MINUS_1_5 = "Handicap (-1.5) Home Team"
    HANDICAP_AWAY_PLUS_1_5 = "Handicap (+1.5) Away Team"
    HOME_SCORE_FIRST_HALF = "Home Team to Score in 1st Half: Yes"
    AWAY_SCORE_SECOND_HALF = "Away Team to Score in 2nd Half: Yes"
    HOME_TO_SCORE = "Team to Score: Home"
    AWAY_TO_SCORE = "Team to Score: Away"
    NO_PICK = "No Pick"


class RiskProfile(str, Enum):
    """Optional hint steering the market selector towards one market family."""
    OVER_UNDER = "over-under"
    BTTS = "btts"
    MATCH_WINNER = "match-winner"


class SettlementResult(str, Enum):
    """Settlement state of a persisted prediction."""
    WON = "Won"
    LOST = "Lost"
    PENDING = "Pending"
    POSTPONED = "Postponed"


class MatchStatus(str, Enum):
    """Status of a match as reported by a result feed."""
    SCHEDULED = "SCHEDULED"
    IN_PLAY = "IN_PLAY"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"


@dataclass
class TeamStats:
    """
    Season aggregate statistics for one team, taken from a standings table.

    Every field is optional: partial standings rows are expected and are
    treated as absent signals by the scorer.

    Attributes:
        form: Recent results, chars in {W, D, L}, most recent first
        league_rank: Table position (1 = top)
        goals_for: Goals scored this season
        goals_against: Goals conceded this season
        clean_sheets: Matches without conceding
    """
    form: Optional[str] = None
    league_rank: Optional[int] = None
    goals_for: Optional[int] = None
    goals_against: Optional[int] = None
    clean_sheets: Optional[int] = None


@dataclass
class HeadToHead:
    """Historical tally between two teams. A zero total means no history."""
    home_wins: int = 0
    draws: int = 0
    away_wins: int = 0

    @property
    def total(self) -> int:
        return self.home_wins + self.draws + self.away_wins


@dataclass
class Fixture:
    """
    A scheduled, not-yet-played match.

    Attributes:
        match_id: Feed identifier of the match (0 when unknown)
        home_team: Home team display name
        away_team: Away team display name
        league: Competition display name
        league_code: Competition code used by the fixture feed
        kickoff: Kickoff time as an ISO-8601 string
        home_team_id: Feed identifier of the home team
        away_team_id: Feed identifier of the away team
        home_stats: Standings statistics for the home team, if known
        away_stats: Standings statistics for the away team, if known
        h2h: Head-to-head tally, if known
    """
    match_id: int
    home_team: str
    away_team: str
    league: str
    league_code: str
    kickoff: str
    home_team_id: int = 0
    away_team_id: int = 0
    home_stats: Optional[TeamStats] = None
    away_stats: Optional[TeamStats] = None
    h2h: Optional[HeadToHead] = None


@dataclass(frozen=True)
class MatchAnalysis:
    """Derived strength figures for one fixture. Never persisted."""
    home_score: int
    away_score: int
    expected_goals_home: float
    expected_goals_away: float
    confidence: int
    btts_probability: float

    @property
    def total_expected_goals(self) -> float:
        return self.expected_goals_home + self.expected_goals_away

    @property
    def score_gap(self) -> int:
        return abs(self.home_score - self.away_score)


@dataclass(frozen=True)
class Prediction:
    """
    A scored pick for one fixture, handed to storage and presentation.

    Attributes:
        id: Unique identifier, ``pred-{match_id}-{timestamp_ms}-{index}``
        team1: Home team name
        team2: Away team name
        bet_type: Selected market
        confidence: Confidence score (0 to 100)
        league: Competition display name
        match_time: Scheduled kickoff (ISO-8601) or "TBD"
        match_id: Feed match identifier used for later settlement lookup
    """
    id: str
    team1: str
    team2: str
    bet_type: Market
    confidence: int
    league: str
    match_time: str
    match_id: Optional[int] = None

    def to_dict(self) -> dict:
        """Serialize to the wire format consumed by the UI collaborator."""
        data = {
            "id": self.id,
            "team1": self.team1,
            "team2": self.team2,
            "betType": self.bet_type.value,
            "confidence": self.confidence,
            "league": self.league,
            "matchTime": self.match_time,
        }
        if self.match_id is not None:
            data["matchId"] = self.match_id
        return data


@dataclass
class MatchResult:
    """
    A match as reported by a result feed.

    Goal fields are None when the feed does not (yet) provide them; half-time
    goals are frequently missing from scraped sources.
    """
    match_id: int
    home_team: str
    away_team: str
    status: MatchStatus
    date: str
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    home_ht: Optional[int] = None
    away_ht: Optional[int] = None

    @property
    def has_full_time(self) -> bool:
        return self.home_goals is not None and self.away_goals is not None

    def format_score(self) -> str:
        if not self.has_full_time:
            return "-"
        return f"{self.home_goals} - {self.away_goals}"

    def reversed(self) -> "MatchResult":
        """The same match with home and away sides exchanged."""
        return replace(
            self,
            home_team=self.away_team,
            away_team=self.home_team,
            home_goals=self.away_goals,
            away_goals=self.home_goals,
            home_ht=self.away_ht,
            away_ht=self.home_ht,
        )


@dataclass
class HistoryItem:
    """
    A persisted prediction plus its settlement state.

    Attributes:
        id: Identifier of the originating prediction
        home_team: Home team name as predicted
        away_team: Away team name as predicted
        prediction: Market value string of the pick
        result: Settlement state
        score: Final score ("H - A") or "-"
        league: Competition display name
        match_id: Result-feed match identifier, once known
    """
    id: str
    home_team: str
    away_team: str
    prediction: str
    result: SettlementResult = SettlementResult.PENDING
    score: str = "-"
    league: Optional[str] = None
    match_id: Optional[int] = None

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "HistoryItem":
        return cls(
            id=prediction.id,
            home_team=prediction.team1,
            away_team=prediction.team2,
            prediction=prediction.bet_type.value,
            league=prediction.league,
            match_id=prediction.match_id,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryItem":
        try:
            result = SettlementResult(data.get("result") or SettlementResult.PENDING.value)
        except ValueError:
            result = SettlementResult.PENDING
        match_id = data.get("matchId")
        return cls(
            id=str(data.get("id", "")),
            home_team=data.get("homeTeam", ""),
            away_team=data.get("awayTeam", ""),
            prediction=data.get("prediction", ""),
            result=result,
            score=data.get("score") or "-",
            league=data.get("league"),
            match_id=safe_int(match_id),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "homeTeam": self.home_team,
            "awayTeam": self.away_team,
            "prediction": self.prediction,
            "result": self.result.value,
            "score": self.score,
            "league": self.league,
            "matchId": self.match_id,
        }

    def updated(self, **changes) -> "HistoryItem":
        return replace(self, **changes)

    @property
    def team_pair(self) -> tuple[str, str]:
        return (self.home_team, self.away_team)


@dataclass
class DailyRecord:
    """
    The ordered prediction history for one date (and optionally one user).

    No two items share both home and away team name; this is enforced by
    the merge step in storage, not by the record itself.
    """
    date: str
    items: list[HistoryItem] = field(default_factory=list)
    user_id: Optional[str] = None
