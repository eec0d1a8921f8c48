"""
Fuzzy team-name matching between predictions and result feeds.

Feeds disagree on club names ("Wolverhampton Wanderers" vs "Wolves",
"Manchester City FC" vs "Man City"), so matching works on normalized names
and loose substring overlap instead of ids. The first result that fits
wins; candidates are not ranked.
"""

import logging
import re
import unicodedata
from typing import Optional

from safescore.models import MatchResult

# Configure module logger
logger = logging.getLogger(__name__)

SUFFIX_TOKENS = (
    "fc", "afc", "cf", "sc", "ac", "united", "city", "rovers", "albion", "town",
    "athletic", "clube de", "club", "de", "as", "ss", "ssc", "bc", "uc", "us", "cd",
    "futebol", "sad", "sports", "sporting", "international", "internazionale",
    "italy", "portugal", "spain", "france", "england", "germany",
)

_SUFFIXES = re.compile(r"\b(" + "|".join(re.escape(t) for t in SUFFIX_TOKENS) + r")\b")
_NON_WORD = re.compile(r"[\W_]+")

# Alias -> the names feeds use for the same club
NICKNAMES: dict[str, list[str]] = {
    "wolves": ["wolverhampton"],
    "inter": ["internazionale"],
    "mancity": ["manchester city"],
    "manutd": ["manchester united"],
    "spurs": ["tottenham"],
    "avs": ["avs futebol sad"],
    "porto": ["fc porto", "futebol clube do porto"],
}


def normalize_team_name(name: str) -> str:
    """
    Lowercase, strip accents and club-suffix tokens, and collapse punctuation.

    >>> normalize_team_name("Atlético de Madrid")
    'atletico madrid'
    """
    text = unicodedata.normalize("NFKD", name or "")
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    text = _SUFFIXES.sub("", text)
    return _NON_WORD.sub(" ", text).strip()


def overlaps(a: str, b: str) -> bool:
    """Bidirectional substring containment. Empty strings never overlap."""
    if not a or not b:
        return False
    return a in b or b in a


def get_search_terms(name: str) -> list[str]:
    """
    Terms that identify a team: the normalized name, its significant words,
    and any nickname group the name belongs to.
    """
    normalized = normalize_team_name(name)
    terms: list[str] = []

    def add(term: str) -> None:
        if term and term not in terms:
            terms.append(term)

    add(normalized)
    for word in normalized.split(" "):
        if len(word) > 3:
            add(word)

    for alias, names in NICKNAMES.items():
        if overlaps(normalized, alias) or any(overlaps(normalized, n) for n in names):
            add(alias)
            for n in names:
                add(n)

    return terms


def _any_overlap(terms: list[str], team: str) -> bool:
    return any(overlaps(term, team) for term in terms)


def find_match(home_team: str, away_team: str, results: list[MatchResult]) -> Optional[MatchResult]:
    """
    Find the result for a predicted (home, away) pair.

    A result fits when the home terms overlap its home team and the away
    terms overlap its away team, or the same with the teams swapped. A
    result found in swapped order is returned reversed, so its home side
    is always the predicted home team.

    Args:
        home_team: Predicted home team name
        away_team: Predicted away team name
        results: Candidate results, in feed order

    Returns:
        First fitting MatchResult oriented like the prediction, or None
    """
    home_terms = get_search_terms(home_team)
    away_terms = get_search_terms(away_team)

    for result in results:
        result_home = normalize_team_name(result.home_team)
        result_away = normalize_team_name(result.away_team)

        if _any_overlap(home_terms, result_home) and _any_overlap(away_terms, result_away):
            logger.debug(
                f"Matched {home_team} vs {away_team} to "
                f"{result.home_team} vs {result.away_team} (id {result.match_id})"
            )
            return result

        if _any_overlap(home_terms, result_away) and _any_overlap(away_terms, result_home):
            logger.debug(
                f"Matched {home_team} vs {away_team} to reversed fixture "
                f"{result.home_team} vs {result.away_team} (id {result.match_id})"
            )
            return result.reversed()

    logger.debug(f"No result found for {home_team} vs {away_team}")
    return None
