"""Unit tests for layout settings and text measurement."""

import dataclasses

import pytest

from nestflow.measure import FixedWidthMeasurer, PillowTextMeasurer
from nestflow.settings import LayoutSettings


class TestLayoutSettings:
    """Tests for LayoutSettings."""

    def test_defaults(self):
        """Test default option values."""
        settings = LayoutSettings()
        assert settings.ranksep == 30
        assert settings.nodesep == 50
        assert settings.omit_access_nodes is False
        assert settings.use_vertical_state_machine_layout is False
        assert settings.large_graph_threshold == 1000
        assert settings.summarize_threshold == 10

    def test_frozen(self):
        """Test settings cannot be changed in place."""
        settings = LayoutSettings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.ranksep = 10

    def test_with_overrides(self):
        """Test deriving a changed copy."""
        settings = LayoutSettings()
        changed = settings.with_overrides(omit_access_nodes=True, nodesep=20)

        assert changed.omit_access_nodes is True
        assert changed.nodesep == 20
        assert settings.omit_access_nodes is False

    def test_unknown_override(self):
        """Test overriding an unknown option."""
        with pytest.raises(TypeError, match="bogus"):
            LayoutSettings().with_overrides(bogus=1)

    @pytest.mark.parametrize(
        "options",
        [
            {"ranksep": 0},
            {"nodesep": -5},
            {"large_graph_threshold": 0},
            {"summarize_threshold": -1},
        ],
    )
    def test_invalid_values(self, options):
        """Test invalid values are rejected on construction."""
        with pytest.raises(ValueError):
            LayoutSettings(**options)


class TestFixedWidthMeasurer:
    """Tests for FixedWidthMeasurer."""

    def test_width(self):
        """Test width is proportional to length."""
        measurer = FixedWidthMeasurer(char_width=6.0)
        assert measurer.measure("abcd") == 24
        assert measurer.measure("") == 0

    def test_scale(self):
        """Test scaled text is proportionally wider."""
        assert FixedWidthMeasurer(4).measure("ab", scale=1.5) == 12


class TestPillowTextMeasurer:
    """Tests for PillowTextMeasurer."""

    def test_empty_text(self):
        """Test empty text has no width."""
        assert PillowTextMeasurer().measure("") == 0.0

    def test_longer_text_is_wider(self):
        """Test measurement grows with the text."""
        measurer = PillowTextMeasurer()
        short = measurer.measure("map")
        long = measurer.measure("map_entry_with_a_long_label")
        assert 0 < short < long

    def test_cached(self):
        """Test repeated measurements reuse the cache."""
        measurer = PillowTextMeasurer()
        first = measurer.measure("tasklet")
        assert ("tasklet", measurer.font_size) in measurer._cache
        assert measurer.measure("tasklet") == first

    def test_missing_font_falls_back(self):
        """Test an unknown font name still measures text."""
        measurer = PillowTextMeasurer(font_name="no-such-font-anywhere")
        assert measurer.measure("label") > 0
