"""Tests for BuildOptions."""

import pytest
from pydantic import ValidationError

from planpack.builder.options import BuildOptions


class TestDefaults:
    """Test default values."""

    def test_defaults(self):
        """Every option has a default."""
        options = BuildOptions()
        assert options.name is None
        assert options.tags == []
        assert options.labels == []
        assert options.quiet is None
        assert options.inline_cache is True
        assert options.current_dir is True
        assert options.no_cache is False
        assert options.use_cache is True

    def test_unknown_option_rejected(self):
        """Misspelled options are rejected."""
        with pytest.raises(ValidationError):
            BuildOptions(no_caches=True)


class TestEffectiveQuiet:
    """Test the quiet/verbose interaction."""

    def test_default_is_quiet(self):
        """Without flags builds are quiet."""
        assert BuildOptions().effective_quiet is True

    def test_verbose_means_not_quiet(self):
        """Verbose without quiet is not quiet."""
        assert BuildOptions(verbose=True).effective_quiet is False

    def test_explicit_quiet(self):
        """An explicit quiet value is honored."""
        assert BuildOptions(quiet=False).effective_quiet is False
        assert BuildOptions(quiet=True).effective_quiet is True

    def test_verbose_wins_over_quiet(self):
        """Verbose and quiet are never both honored."""
        assert BuildOptions(quiet=True, verbose=True).effective_quiet is False


class TestValidation:
    """Test list validation."""

    def test_valid_labels(self):
        """key=value labels are accepted."""
        options = BuildOptions(labels=["team=web", "empty="])
        assert options.labels == ["team=web", "empty="]

    @pytest.mark.parametrize("label", ["novalue", "=value"])
    def test_invalid_labels(self, label):
        """Labels need a key and '='."""
        with pytest.raises(ValidationError, match="key=value"):
            BuildOptions(labels=[label])

    def test_tags_without_whitespace(self):
        """Tags may not contain whitespace."""
        with pytest.raises(ValidationError):
            BuildOptions(tags=["my tag"])

    def test_no_cache(self):
        """no_cache disables cache use."""
        assert BuildOptions(no_cache=True).use_cache is False
