"""History operations wiring the store, parser, matcher and chain detector."""

from pathlib import Path

from repty.chains.detector import ChainDetector
from repty.config import Config, should_exclude_command
from repty.logging import get_logger
from repty.models import Command, ScoredCommand, join_chain
from repty.nlp.matcher import CommandMatcher
from repty.nlp.parser import QueryParser
from repty.project import find_project_root
from repty.store import CommandStore, SearchFilters, now_ms

logger = get_logger("history")

CHAIN_ALIAS_SEPARATOR = "|"


def log_command(
    store: CommandStore,
    detector: ChainDetector,
    command: str,
    directory: str | Path,
    config: Config,
    exit_code: int | None = None,
    now: int | None = None,
) -> int | None:
    """Store a command and record any chains it completes.

    Args:
        store: CommandStore to write to
        detector: ChainDetector over the same store
        command: Command text as typed
        directory: Working directory the command ran in
        config: Config with exclude patterns
        exit_code: Exit status of the command, if known
        now: Timestamp in milliseconds (defaults to current time)

    Returns:
        Id of the stored command, or None if it was blank or excluded
    """
    command = command.strip()
    if not command:
        return None

    if should_exclude_command(command, config):
        logger.info("Command excluded: matched exclude pattern")
        return None

    directory = str(directory)
    command_id = store.insert_command(
        Command(
            command=command,
            timestamp=now if now is not None else now_ms(),
            directory=directory,
            exit_code=exit_code,
        )
    )
    detector.detect_and_record(command, directory)
    return command_id


def search_history(
    store: CommandStore,
    parser: QueryParser,
    matcher: CommandMatcher,
    query: str,
    config: Config,
    directory: str | Path | None = None,
    now: int | None = None,
) -> list[ScoredCommand]:
    """Find the stored commands that best match a free-text query.

    When a directory is given the search is scoped to its project root,
    or to the directory itself outside any project.

    Returns:
        Relevant commands, best match first
    """
    parsed = parser.parse(query)

    filters = SearchFilters(
        start_date=parsed.start_date,
        end_date=parsed.end_date,
        command_type=parsed.command_type,
        keywords=parser.extract_keywords(parsed),
    )
    if directory is not None:
        filters.directory = str(directory)
        filters.project_root = find_project_root(directory)

    commands = store.search_commands(filters, config.max_results)
    ranked = matcher.rank_commands(commands, parsed, now)
    relevant = matcher.filter_relevant(ranked, parsed)

    logger.info("Searched history: candidates=%d relevant=%d", len(commands), len(relevant))
    return relevant


def add_alias(store: CommandStore, name: str, command: str) -> list[str]:
    """Store an alias; commands separated by '|' become a chain alias.

    Returns:
        The commands the alias expands to
    """
    name = name.strip()
    if not name:
        raise ValueError("Alias name must not be empty")

    if CHAIN_ALIAS_SEPARATOR in command:
        parts = [part.strip() for part in command.split(CHAIN_ALIAS_SEPARATOR)]
        parts = [part for part in parts if part]
        if not parts:
            raise ValueError("Alias command must not be empty")
        store.add_alias(name, join_chain(parts), "chain")
        return parts

    command = command.strip()
    if not command:
        raise ValueError("Alias command must not be empty")
    store.add_alias(name, command, "single")
    return [command]


def resolve_alias(store: CommandStore, name: str) -> list[str] | None:
    """Expand an alias into its commands, or None if no such alias exists."""
    alias = store.get_alias(name.strip())
    if alias is None:
        return None
    return alias.commands
