"""Detection and suggestion of recurring command chains."""

from typing import Protocol

from repty.config import ChainConfig
from repty.logging import get_logger
from repty.models import ChainCandidate, Command, CommandChain

logger = get_logger("chains")


class ChainStore(Protocol):
    """Store operations the chain detector relies on."""

    def get_recent_commands(self, limit: int = 20) -> list[Command]:
        ...

    def get_frequent_chains(self, limit: int = 10) -> list[CommandChain]:
        ...

    def record_chain_usage(self, commands: list[str]) -> None:
        ...


class ChainDetector:
    """Records same-directory command sequences and suggests them for queries.

    The store must return recent commands newest first and chains ordered
    by count then last use. Store errors, including a store that is not
    open, propagate to the caller.
    """

    def __init__(self, store: ChainStore, config: ChainConfig | None = None) -> None:
        self._store = store
        self._config = config or ChainConfig()

    def detect_and_record(self, current_command: str, directory: str) -> list[list[str]]:
        """Record chains ending at the most recent command in a directory.

        Call this after the triggering command has been stored. Every window
        size is checked independently, so a 3-command chain and its trailing
        2-command chain can both be recorded for the same command.

        Args:
            current_command: The command that was just logged
            directory: Working directory the command ran in

        Returns:
            The sequences that were recorded, each oldest first
        """
        recent = self._store.get_recent_commands(self._config.lookback)
        same_dir = [cmd for cmd in recent if cmd.directory == directory]

        if len(same_dir) < 2:
            return []

        recorded: list[list[str]] = []
        for size in self._config.window_sizes:
            window = same_dir[:size]
            if len(window) != size:
                continue
            gaps = [newer.timestamp - older.timestamp for newer, older in zip(window, window[1:])]
            if all(gap < self._config.max_gap_ms for gap in gaps):
                sequence = [cmd.command for cmd in reversed(window)]
                self._store.record_chain_usage(sequence)
                recorded.append(sequence)

        if recorded:
            logger.debug(
                "Recorded chains: command=%r directory=%s chains=%d",
                current_command,
                directory,
                len(recorded),
            )
        return recorded

    def find_chains_for_query(self, query: str) -> list[ChainCandidate]:
        """Suggest recurring chains relevant to a query.

        Only chains seen at least min_count times are considered. A command
        that equals the query, starts with it as a whole word, or equals
        "git <query>" is a strict match; containing it is a loose match.

        Returns:
            ChainCandidates sorted by descending score
        """
        query_lower = query.lower()
        results: list[ChainCandidate] = []

        for chain in self._store.get_frequent_chains(self._config.fetch_limit):
            if chain.count < self._config.min_count:
                continue

            commands = chain.commands
            best = 0
            strict = False
            for cmd in commands:
                cmd_lower = cmd.lower()
                if (
                    cmd_lower == query_lower
                    or cmd_lower.startswith(query_lower + " ")
                    or cmd_lower == "git " + query_lower
                ):
                    best = max(best, self._config.strict_match_score)
                    strict = True
                elif query_lower in cmd_lower:
                    best = max(best, self._config.loose_match_score)

            if not strict and best < self._config.loose_match_score:
                continue

            score = chain.count * self._config.count_weight + best
            if query_lower in commands[-1].lower():
                score += self._config.outcome_bonus

            results.append(ChainCandidate(commands=commands, score=score))

        return sorted(results, key=lambda c: c.score, reverse=True)
