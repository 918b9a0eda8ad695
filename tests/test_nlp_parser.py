"""Tests for the query parser."""

import warnings
from datetime import datetime

import pytest

from repty.nlp.parser import (
    ACTION_KEYWORDS,
    COMMAND_TYPES,
    STOP_WORDS,
    DateMatch,
    ParsedQuery,
    QueryParser,
)

NOW = datetime(2026, 3, 15, 14, 30, 0)


class FixedDateExtractor:
    """Date extractor returning preset matches."""

    def __init__(self, *matches: DateMatch) -> None:
        self.matches = list(matches)
        self.calls: list[str] = []

    def extract(self, text: str, now: datetime) -> list[DateMatch]:
        self.calls.append(text)
        return list(self.matches)


class BrokenDateExtractor:
    def extract(self, text: str, now: datetime) -> list[DateMatch]:
        raise ValueError("cannot parse")


@pytest.fixture
def parser() -> QueryParser:
    """Provide a parser that never finds dates."""
    return QueryParser(date_extractor=FixedDateExtractor())


class TestDateRange:
    """Tests for date phrase handling."""

    def test_single_date_becomes_whole_day(self) -> None:
        extractor = FixedDateExtractor(DateMatch(text="yesterday", start=datetime(2026, 3, 14, 9, 15)))
        parsed = QueryParser(extractor).parse("deploy yesterday", now=NOW)

        assert parsed.start_date == datetime(2026, 3, 14, 0, 0, 0, 0)
        assert parsed.end_date == datetime(2026, 3, 14, 23, 59, 59, 999000)

    def test_range_floors_start_and_ceils_end(self) -> None:
        extractor = FixedDateExtractor(
            DateMatch(
                text="from monday to wednesday",
                start=datetime(2026, 3, 9, 10, 0),
                end=datetime(2026, 3, 11, 8, 0),
            )
        )
        parsed = QueryParser(extractor).parse("docker builds from monday to wednesday", now=NOW)

        assert parsed.start_date == datetime(2026, 3, 9, 0, 0)
        assert parsed.end_date == datetime(2026, 3, 11, 23, 59, 59, 999000)

    def test_only_first_match_is_used(self) -> None:
        extractor = FixedDateExtractor(
            DateMatch(text="today", start=datetime(2026, 3, 15, 14, 30)),
            DateMatch(text="yesterday", start=datetime(2026, 3, 14, 14, 30)),
        )
        parsed = QueryParser(extractor).parse("today or yesterday", now=NOW)

        assert parsed.start_date == datetime(2026, 3, 15, 0, 0)
        assert any(kw.startswith("yesterda") for kw in parsed.keywords)

    def test_date_phrase_removed_before_keywords(self) -> None:
        extractor = FixedDateExtractor(DateMatch(text="last friday", start=datetime(2026, 3, 13)))
        parsed = QueryParser(extractor).parse("npm publish last friday", now=NOW)

        assert "last" not in parsed.keywords
        assert "fridai" not in parsed.keywords
        assert "friday" not in parsed.keywords
        assert parsed.command_type == "npm"

    def test_no_date_leaves_range_unset(self, parser: QueryParser) -> None:
        parsed = parser.parse("git status", now=NOW)
        assert parsed.start_date is None
        assert parsed.end_date is None

    def test_extractor_failure_degrades_to_keywords(self) -> None:
        parsed = QueryParser(BrokenDateExtractor()).parse("git push", now=NOW)

        assert parsed.start_date is None
        assert parsed.command_type == "git"
        assert parsed.action == "push"

    def test_real_extractor_deploy_yesterday(self) -> None:
        """The default extractor should recognize 'yesterday' as a whole day."""
        parsed = QueryParser().parse("deploy yesterday", now=NOW)

        assert parsed.action == "deploy"
        assert parsed.start_date == datetime(2026, 3, 14, 0, 0, 0, 0)
        assert parsed.end_date == datetime(2026, 3, 14, 23, 59, 59, 999000)
        assert not any(kw.startswith("yesterda") for kw in parsed.keywords)

    @pytest.mark.parametrize(
        "query",
        ["chmod 755 deploy.sh", "kill 1234", "tail -n 100 app.log", "docker run -p 1200 web"],
    )
    def test_real_extractor_ignores_bare_numbers(self, query: str) -> None:
        """Numbers that only parse as clock times should not set a date range."""
        parsed = QueryParser().parse(query, now=NOW)

        assert parsed.start_date is None
        assert parsed.end_date is None

    def test_real_extractor_keeps_number_tokens(self) -> None:
        parsed = QueryParser().parse("chmod 755", now=NOW)
        assert parsed.keywords == ["chmod", "755"]

    def test_real_extractor_no_deprecation_warning(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            QueryParser().parse("deploy yesterday", now=NOW)

        assert not any(w.category.__name__ == "pdt20DeprecationWarning" for w in caught)


class TestCommandTypeAndAction:
    """Tests for vocabulary detection."""

    def test_detects_command_type(self, parser: QueryParser) -> None:
        assert parser.parse("what docker command did I use").command_type == "docker"

    def test_vocabulary_order_breaks_ties(self, parser: QueryParser) -> None:
        """The earliest vocabulary entry wins regardless of query position."""
        parsed = parser.parse("npm then git")
        assert parsed.command_type == "git"

    def test_action_vocabulary_order_breaks_ties(self, parser: QueryParser) -> None:
        parsed = parser.parse("push after commit")
        assert parsed.action == "commit"

    def test_requires_exact_token(self, parser: QueryParser) -> None:
        parsed = parser.parse("github pushed")
        assert parsed.command_type is None
        assert parsed.action is None

    def test_case_insensitive(self, parser: QueryParser) -> None:
        parsed = parser.parse("GIT Reset")
        assert parsed.command_type == "git"
        assert parsed.action == "reset"

    def test_punctuation_splits_tokens(self, parser: QueryParser) -> None:
        parsed = parser.parse("cargo,build!")
        assert parsed.command_type == "cargo"
        assert parsed.action == "build"

    def test_vocabularies_are_ordered(self) -> None:
        assert COMMAND_TYPES[0] == "git"
        assert COMMAND_TYPES[-1] == "mv"
        assert ACTION_KEYWORDS[0] == "reset"
        assert ACTION_KEYWORDS[-1] == "deploy"


class TestKeywords:
    """Tests for keyword extraction."""

    def test_drops_stop_words_and_short_tokens(self, parser: QueryParser) -> None:
        parsed = parser.parse("what command did I use to run the ls on my files")

        assert "command" not in parsed.keywords
        assert "what" not in parsed.keywords
        assert "the" not in parsed.keywords
        assert "ls" not in parsed.keywords
        assert "my" not in parsed.keywords
        assert "file" in parsed.keywords

    def test_stems_keywords(self, parser: QueryParser) -> None:
        parsed = parser.parse("running containers")
        assert parsed.keywords == ["run", "contain"]

    def test_deduplicates(self, parser: QueryParser) -> None:
        parsed = parser.parse("docker docker logs logs")
        assert parsed.keywords == ["docker", "log"]

    def test_empty_query(self, parser: QueryParser) -> None:
        parsed = parser.parse("")
        assert parsed == ParsedQuery()

    @pytest.mark.parametrize(
        "query",
        [
            "how did I reset the git branch in the api repo",
            "!!! ??? ...",
            "a an the to for from with on at in by",
            "python python3 manage.py runserver 0.0.0.0:8000",
            "rm -rf node_modules && npm install",
        ],
    )
    def test_keyword_invariants(self, parser: QueryParser, query: str) -> None:
        parsed = parser.parse(query)

        assert len(parsed.keywords) == len(set(parsed.keywords))
        for kw in parsed.keywords:
            assert len(kw) > 2
            assert kw not in STOP_WORDS


class TestExtractKeywords:
    """Tests for extract_keywords ordering."""

    def test_orders_type_action_keywords(self, parser: QueryParser) -> None:
        parsed = ParsedQuery(keywords=["origin", "main"], command_type="git", action="push")
        assert parser.extract_keywords(parsed) == ["git", "push", "origin", "main"]

    def test_omits_missing_fields(self, parser: QueryParser) -> None:
        parsed = ParsedQuery(keywords=["webpack"], action="build")
        assert parser.extract_keywords(parsed) == ["build", "webpack"]

    def test_from_parsed_query(self, parser: QueryParser) -> None:
        parsed = parser.parse("install express with npm")
        assert parser.extract_keywords(parsed)[:2] == ["npm", "install"]
