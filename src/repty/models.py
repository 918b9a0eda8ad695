"""Canonical data models."""

from dataclasses import asdict, dataclass, field

# Delimiter used to join a chain's commands into its canonical text
CHAIN_DELIMITER = " && "


def join_chain(commands: list[str]) -> str:
    """Join an ordered command sequence into its canonical chain text."""
    return CHAIN_DELIMITER.join(commands)


def split_chain(commands_text: str) -> list[str]:
    """Split canonical chain text back into its ordered commands."""
    return commands_text.split(CHAIN_DELIMITER)


@dataclass
class Command:
    """A logged shell command."""

    command: str
    timestamp: int  # Unix timestamp (milliseconds)
    directory: str  # Absolute working directory
    id: int | None = None
    exit_code: int | None = None
    tags: str | None = None
    description: str | None = None


@dataclass
class ScoredCommand(Command):
    """A command paired with its relevance score for one query."""

    score: int = 0

    @classmethod
    def from_command(cls, command: Command, score: int) -> "ScoredCommand":
        """Build a scored copy of a command."""
        return cls(**asdict(command), score=score)


@dataclass
class CommandChain:
    """A recorded sequence of commands observed run close together."""

    commands_text: str
    count: int = 1
    last_used: int = 0  # Unix timestamp (milliseconds)
    id: int | None = None

    @property
    def commands(self) -> list[str]:
        """Ordered commands of this chain, oldest first."""
        return split_chain(self.commands_text)


@dataclass
class ChainCandidate:
    """A chain suggested for a query."""

    commands: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class Alias:
    """A named shortcut for a single command or a chain."""

    name: str
    commands_text: str
    kind: str  # single, chain

    @property
    def commands(self) -> list[str]:
        """Commands this alias expands to."""
        if self.kind == "chain":
            return split_chain(self.commands_text)
        return [self.commands_text]


@dataclass
class HistoryStats:
    """Aggregate counts over the command history."""

    total: int = 0
    today: int = 0
    this_week: int = 0
