"""Tests for enrichment schema normalization."""
import pytest
from pydantic import ValidationError

from schemas.enrichment import (
    DEFAULT_CATEGORY,
    MAX_TAG_LENGTH,
    MAX_TAGS,
    MAX_TITLE_LENGTH,
    Enrichment,
    normalize_category,
    normalize_tags,
)


class TestNormalizeCategory:
    """Tests for normalize_category."""

    def test__normalize_category__known_category_case_insensitive(self) -> None:
        assert normalize_category("health & fitness") == "Health & Fitness"

    def test__normalize_category__unknown_kept(self) -> None:
        """Categories outside the known list are stored as given."""
        assert normalize_category("  Gardening ") == "Gardening"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test__normalize_category__blank_defaults(self, value: str | None) -> None:
        assert normalize_category(value) == DEFAULT_CATEGORY


class TestNormalizeTags:
    """Tests for normalize_tags."""

    def test__normalize_tags__dedupes_keeping_order(self) -> None:
        assert normalize_tags(["Python", "web", "python", " Web ", "api"]) == [
            "Python", "web", "api",
        ]

    def test__normalize_tags__comma_string(self) -> None:
        assert normalize_tags("recipes, dinner,, quick ") == ["recipes", "dinner", "quick"]

    def test__normalize_tags__caps_count(self) -> None:
        tags = normalize_tags([f"tag{i}" for i in range(25)])
        assert len(tags) == MAX_TAGS
        assert tags[0] == "tag0"

    def test__normalize_tags__truncates_long_tags(self) -> None:
        assert normalize_tags(["a" * 80]) == ["a" * MAX_TAG_LENGTH]

    def test__normalize_tags__none(self) -> None:
        assert normalize_tags(None) == []


class TestEnrichment:
    """Tests for the Enrichment model."""

    def test__enrichment__defaults(self) -> None:
        result = Enrichment(title="  A title  ")
        assert result.title == "A title"
        assert result.summary == "No summary generated"
        assert result.category == "Other"
        assert result.tags == []

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test__enrichment__blank_title_rejected(self, title: str | None) -> None:
        with pytest.raises(ValidationError):
            Enrichment(title=title)

    def test__enrichment__null_summary_defaults(self) -> None:
        assert Enrichment(title="t", summary=None).summary == "No summary generated"

    def test__enrichment__long_title_truncated_to_column_width(self) -> None:
        """The model is only asked for short titles; longer ones are cut, not rejected."""
        result = Enrichment(title="  " + "x" * 600)
        assert result.title == "x" * MAX_TITLE_LENGTH
