"""Tests for the i18n example."""


class TestI18nApp:
    """Verify locale-specific rendering of one template."""

    def test_english(self, example_app) -> None:
        assert example_app.outputs["en-US"] == (
            "3 items for €1,249.90, 15% off, ships March 1, 2024\n"
            "-- Formatr Books (2/20/24)"
        )

    def test_german_separators_and_month(self, example_app) -> None:
        text = example_app.outputs["de-DE"]
        assert "1.249,90" in text
        assert "1. März 2024" in text

    def test_templates_are_distinct_per_locale(self, example_app) -> None:
        templates = example_app.templates
        assert templates["en-US"] is not templates["de-DE"]
