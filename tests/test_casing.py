"""
Tests for vpkg.casing
=====================

Test Organization
-----------------
- TestSplitWords: Word boundary detection
- TestCaseHelpers: Each casing projection, including literal fixtures
- TestGoIdent: Identifier sanitizing
- TestHelperTable: The filter table exposed to templates
"""

import pytest

from vpkg.casing import (
    HELPERS,
    IDENT_PLACEHOLDER,
    camel,
    go_ident,
    kebab,
    lower,
    pascal,
    snake,
    split_words,
    title,
    upper,
)


# =============================================================================
# Word Splitting Tests
# =============================================================================

class TestSplitWords:
    """Tests for split_words."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("redis-cache", ["redis", "cache"]),
            ("redis_cache", ["redis", "cache"]),
            ("redis cache", ["redis", "cache"]),
            ("RedisCache", ["Redis", "Cache"]),
            ("redisCache", ["redis", "Cache"]),
            ("redis--cache__x", ["redis", "cache", "x"]),
            ("http-ServerPool_v2", ["http", "Server", "Pool", "v2"]),
        ],
    )
    def test_boundaries(self, value: str, expected: list[str]) -> None:
        """Separators and lower-to-upper transitions split words."""
        assert split_words(value) == expected

    def test_empty_string(self) -> None:
        """Empty input has no words."""
        assert split_words("") == []

    def test_only_separators(self) -> None:
        """Separator-only input has no words."""
        assert split_words(" -_ ") == []

    def test_uppercase_run_is_one_word(self) -> None:
        """Upper-to-upper is not a boundary."""
        assert split_words("HTTP") == ["HTTP"]


# =============================================================================
# Case Helper Tests
# =============================================================================

class TestCaseHelpers:
    """Tests for the case projections."""

    def test_pascal_fixture(self) -> None:
        assert pascal("redis-cache") == "RedisCache"

    def test_snake_fixture(self) -> None:
        assert snake("RedisCache") == "redis_cache"

    def test_kebab_fixture(self) -> None:
        assert kebab("redis_cache") == "redis-cache"

    def test_camel(self) -> None:
        assert camel("redis-cache") == "redisCache"
        assert camel("Redis Cache") == "redisCache"

    def test_title(self) -> None:
        assert title("redis-cache") == "Redis Cache"
        assert title("redisCache") == "Redis Cache"

    def test_upper_and_lower(self) -> None:
        assert upper("redis-cache") == "REDIS-CACHE"
        assert lower("Redis-Cache") == "redis-cache"

    @pytest.mark.parametrize("helper", list(HELPERS.values()))
    def test_helpers_are_total_on_empty_input(self, helper) -> None:
        """Every helper accepts the empty string."""
        assert isinstance(helper(""), str)

    @pytest.mark.parametrize("helper", list(HELPERS.values()))
    def test_helpers_accept_mixed_separators(self, helper) -> None:
        """Every helper accepts messy input without raising."""
        assert isinstance(helper("  mixed-Input_withCamel  case--"), str)

    def test_mixed_separators_normalize(self) -> None:
        """All separator styles converge on the same projection."""
        for value in ("redis-cache", "redis_cache", "redis cache", "redisCache", "RedisCache"):
            assert pascal(value) == "RedisCache"
            assert snake(value) == "redis_cache"
            assert kebab(value) == "redis-cache"


# =============================================================================
# Identifier Sanitizing Tests
# =============================================================================

class TestGoIdent:
    """Tests for go_ident."""

    def test_leading_digit_fixture(self) -> None:
        assert go_ident("2fast") == "_2fast"

    def test_invalid_characters_replaced(self) -> None:
        assert go_ident("redis-cache") == "redis_cache"
        assert go_ident("a.b/c d") == "a_b_c_d"

    def test_non_ascii_replaced(self) -> None:
        assert go_ident("café") == "caf_"

    def test_empty_uses_placeholder(self) -> None:
        assert go_ident("") == IDENT_PLACEHOLDER

    def test_valid_identifier_unchanged(self) -> None:
        assert go_ident("redis_cache") == "redis_cache"
        assert go_ident("_private") == "_private"

    @pytest.mark.parametrize(
        "value",
        ["vandor/redis-cache", "2fast", "", "9", "a b", "---", "ok_name", "ünï/çødé", "1-2-3"],
    )
    def test_idempotent(self, value: str) -> None:
        """Sanitizing twice equals sanitizing once."""
        once = go_ident(value)
        assert go_ident(once) == once

    @pytest.mark.parametrize("value", ["vandor/redis-cache", "2fast", "", "---", "1-2-3"])
    def test_result_is_identifier(self, value: str) -> None:
        """Result is always a valid ASCII identifier."""
        result = go_ident(value)
        assert result
        assert result.isidentifier()
        assert not result[0].isdigit()


# =============================================================================
# Helper Table Tests
# =============================================================================

class TestHelperTable:
    """Tests for the HELPERS mapping."""

    def test_expected_names(self) -> None:
        assert set(HELPERS) == {
            "title", "camel", "pascal", "snake", "kebab", "upper", "lower", "go_ident",
        }

    def test_entries_are_the_functions(self) -> None:
        assert HELPERS["pascal"] is pascal
        assert HELPERS["go_ident"] is go_ident
