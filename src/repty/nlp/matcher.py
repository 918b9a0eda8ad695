"""Ranking of stored commands against a parsed query."""

import math
import time

from rapidfuzz.distance import Levenshtein

from repty.config import MatcherConfig
from repty.logging import get_logger
from repty.models import Command, ScoredCommand
from repty.nlp.parser import ParsedQuery

logger = get_logger("matcher")

DAY_MS = 1000 * 60 * 60 * 24

DEFAULT_MATCHER_CONFIG = MatcherConfig()


def command_type_score(
    command: Command, parsed: ParsedQuery, config: MatcherConfig = DEFAULT_MATCHER_CONFIG
) -> int:
    """Score a command type found at the start of the command, or anywhere in it."""
    if not parsed.command_type:
        return 0
    text = command.command.lower()
    if text.startswith(parsed.command_type):
        return config.command_type_prefix_weight
    if parsed.command_type in text:
        return config.command_type_contains_weight
    return 0


def action_score(
    command: Command, parsed: ParsedQuery, config: MatcherConfig = DEFAULT_MATCHER_CONFIG
) -> int:
    if parsed.action and parsed.action in command.command.lower():
        return config.action_weight
    return 0


def keyword_score(
    command: Command, parsed: ParsedQuery, config: MatcherConfig = DEFAULT_MATCHER_CONFIG
) -> int:
    """Score substring hits plus a fuzzy bonus for every close word.

    The fuzzy bonus can fire several times per keyword when more than one
    word of the command is within the distance limit.
    """
    text = command.command.lower()
    words = text.split()
    score = 0
    for keyword in parsed.keywords:
        if keyword in text:
            score += config.keyword_weight
        for word in words:
            distance = Levenshtein.distance(keyword, word)
            if distance <= config.fuzzy_max_distance:
                score += max(0, config.fuzzy_max_bonus - distance)
    return score


def recency_score(
    command: Command, now: int, config: MatcherConfig = DEFAULT_MATCHER_CONFIG
) -> int:
    """Bonus shrinking by one point per day for commands under a week old."""
    age_days = (now - command.timestamp) / DAY_MS
    if age_days < config.recency_window_days:
        return config.recency_max_bonus - math.floor(age_days)
    return 0


class CommandMatcher:
    """Scores and filters stored commands for a parsed query."""

    def __init__(self, config: MatcherConfig | None = None) -> None:
        self._config = config or MatcherConfig()

    def score(self, command: Command, parsed: ParsedQuery, now: int | None = None) -> int:
        """Sum all scoring contributions for one command."""
        if now is None:
            now = int(time.time() * 1000)
        return (
            command_type_score(command, parsed, self._config)
            + action_score(command, parsed, self._config)
            + keyword_score(command, parsed, self._config)
            + recency_score(command, now, self._config)
        )

    def rank_commands(
        self, commands: list[Command], parsed: ParsedQuery, now: int | None = None
    ) -> list[ScoredCommand]:
        """Score commands and sort them by descending score.

        The sort is stable, so equal scores keep their input order
        (most recent first, as returned by the store).
        """
        if now is None:
            now = int(time.time() * 1000)
        scored = [
            ScoredCommand.from_command(cmd, self.score(cmd, parsed, now))
            for cmd in commands
        ]
        return sorted(scored, key=lambda sc: sc.score, reverse=True)

    def filter_relevant(
        self, scored: list[ScoredCommand], parsed: ParsedQuery | None = None
    ) -> list[ScoredCommand]:
        """Drop weak matches, keeping input order.

        Commands must reach the minimum score and, when the query names an
        action, contain it. Once a strong match exists, anything scoring
        below a fixed fraction of the top score is dropped as well.
        """
        relevant = [sc for sc in scored if sc.score >= self._config.min_score]

        if parsed is not None and parsed.action:
            relevant = [sc for sc in relevant if parsed.action in sc.command.lower()]

        if not relevant:
            return []

        top = max(sc.score for sc in relevant)
        if top > self._config.strong_match_score:
            cutoff = self._config.strong_match_ratio * top
            relevant = [sc for sc in relevant if sc.score >= cutoff]

        logger.debug("Filtered commands: input=%d kept=%d top=%d", len(scored), len(relevant), top)
        return relevant
