"""Query parser turning free-text history queries into structured intent."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

import parsedatetime
from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer

from repty.logging import get_logger

logger = get_logger("parser")

# Vocabulary order breaks ties when several entries appear in one query
COMMAND_TYPES = (
    "git", "npm", "docker", "yarn", "pnpm", "cargo", "python",
    "node", "cd", "ls", "mkdir", "rm", "cp", "mv",
)

ACTION_KEYWORDS = (
    "reset", "install", "commit", "push", "pull", "clone", "checkout", "merge",
    "rebase", "stash", "log", "status", "diff", "add", "remove", "delete",
    "create", "update", "run", "build", "test", "deploy",
)

STOP_WORDS = frozenset({
    "what", "when", "where", "how", "did", "i", "use", "used", "command", "commands",
    "the", "a", "an", "to", "for", "from", "with", "on", "at", "in", "by",
})

MIN_KEYWORD_LENGTH = 3


@dataclass
class DateMatch:
    """A date phrase found in free text."""

    text: str
    start: datetime | None = None
    end: datetime | None = None


class DatePhraseExtractor(Protocol):
    """Finds date phrases in free text."""

    def extract(self, text: str, now: datetime) -> list[DateMatch]:
        ...


class NaturalDateExtractor:
    """Date phrase extractor backed by parsedatetime.

    Only phrases that carry a date are kept. Bare numbers such as ports,
    file modes or PIDs parse as clock times and are ignored.
    """

    def __init__(self) -> None:
        self._calendar = parsedatetime.Calendar(version=parsedatetime.VERSION_CONTEXT_STYLE)

    def extract(self, text: str, now: datetime) -> list[DateMatch]:
        # nlp() yields (datetime, flags, start, end, matched_text) or None
        results = self._calendar.nlp(text, sourceTime=now) or ()
        matches = []
        for value, _flags, _start, _end, matched in results:
            _struct, ctx = self._calendar.parse(matched, sourceTime=now)
            if ctx.hasDate:
                matches.append(DateMatch(text=matched, start=value))
        return matches


@dataclass
class ParsedQuery:
    """Structured intent extracted from a history query."""

    keywords: list[str] = field(default_factory=list)
    command_type: str | None = None
    action: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def first_vocabulary_match(tokens: list[str], vocabulary: tuple[str, ...]) -> str | None:
    """Return the first vocabulary entry present as an exact token."""
    token_set = set(tokens)
    for entry in vocabulary:
        if entry in token_set:
            return entry
    return None


class QueryParser:
    """Parses free-text queries like "git push yesterday" into a ParsedQuery.

    Never raises: unparseable dates and unknown words simply leave the
    matching ParsedQuery fields unset.
    """

    def __init__(self, date_extractor: DatePhraseExtractor | None = None) -> None:
        self._date_extractor = date_extractor or NaturalDateExtractor()
        self._tokenizer = RegexpTokenizer(r"[A-Za-z0-9_]+")
        self._stemmer = PorterStemmer()

    def parse(self, query: str, now: datetime | None = None) -> ParsedQuery:
        """Parse a raw query.

        Args:
            query: Free-text query
            now: Reference time for relative date phrases (defaults to now)

        Returns:
            ParsedQuery with date range, command type, action and keywords
        """
        result = ParsedQuery()
        if now is None:
            now = datetime.now()

        match = self._first_date(query, now)
        if match is not None:
            if match.start is not None:
                result.start_date = start_of_day(match.start)
                if match.end is not None:
                    result.end_date = end_of_day(match.end)
                else:
                    result.end_date = end_of_day(match.start)
            elif match.end is not None:
                result.end_date = end_of_day(match.end)

            query = query.replace(match.text, "", 1)

        tokens = self._tokenizer.tokenize(query.lower())

        result.command_type = first_vocabulary_match(tokens, COMMAND_TYPES)
        result.action = first_vocabulary_match(tokens, ACTION_KEYWORDS)

        keywords: list[str] = []
        for token in tokens:
            if token in STOP_WORDS or len(token) < MIN_KEYWORD_LENGTH:
                continue
            stem = self._stemmer.stem(token)
            if stem not in keywords:
                keywords.append(stem)
        result.keywords = keywords

        logger.debug(
            "Parsed query: command_type=%s action=%s keywords=%s start=%s end=%s",
            result.command_type,
            result.action,
            keywords,
            result.start_date,
            result.end_date,
        )
        return result

    def _first_date(self, query: str, now: datetime) -> DateMatch | None:
        try:
            matches = self._date_extractor.extract(query, now)
        except Exception as e:
            logger.debug("Date extraction failed: query=%r error=%s", query, e)
            return None
        if not matches or not matches[0].text:
            return None
        return matches[0]

    def extract_keywords(self, parsed: ParsedQuery) -> list[str]:
        """Search terms ordered as command type, action, then keywords."""
        terms: list[str] = []
        if parsed.command_type:
            terms.append(parsed.command_type)
        if parsed.action:
            terms.append(parsed.action)
        terms.extend(parsed.keywords)
        return terms
