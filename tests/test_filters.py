"""
Unit tests for extension and name filters.
"""

from file_mover.filters import (
    DEFAULT_TOGGLES,
    VIDEO_EXTENSIONS,
    build_extension_filter,
    matches_extension,
    matches_name,
    normalize_extension,
    parse_custom_extensions,
)


class TestNormalizeExtension:
    """Tests for normalize_extension function."""

    def test_adds_leading_dot(self):
        assert normalize_extension("mp4") == ".mp4"

    def test_keeps_existing_dot(self):
        assert normalize_extension(".mkv") == ".mkv"

    def test_lowercases(self):
        assert normalize_extension("MoV") == ".mov"

    def test_trims_whitespace(self):
        assert normalize_extension("  avi \t") == ".avi"

    def test_empty_token(self):
        assert normalize_extension("") is None
        assert normalize_extension("   ") is None


class TestParseCustomExtensions:
    """Tests for parse_custom_extensions function."""

    def test_all_separators(self):
        """Comma, semicolon, space, tab and newline all split tokens."""
        result = parse_custom_extensions("MP4, .mkv;avi\tWEBM\nflv\r\nts")
        assert result == {".mp4", ".mkv", ".avi", ".webm", ".flv", ".ts"}

    def test_empty_tokens_dropped(self):
        """Repeated separators don't produce empty extensions."""
        assert parse_custom_extensions(",,; ;mp4,,") == {".mp4"}

    def test_empty_text(self):
        assert parse_custom_extensions("") == set()
        assert parse_custom_extensions("   \n ") == set()

    def test_duplicates_collapse(self):
        assert parse_custom_extensions("mp4 .MP4 Mp4") == {".mp4"}


class TestBuildExtensionFilter:
    """Tests for build_extension_filter function."""

    def test_toggles_only(self):
        toggles = {"mp4": True, "mkv": False, "avi": True}
        assert build_extension_filter(toggles) == frozenset({".mp4", ".avi"})

    def test_default_toggles(self):
        """mp4, mkv and avi are checked by default."""
        assert build_extension_filter(DEFAULT_TOGGLES) == frozenset({".mp4", ".mkv", ".avi"})

    def test_toggles_and_custom_merge(self):
        result = build_extension_filter({"mp4": True}, "srt; nfo")
        assert result == frozenset({".mp4", ".srt", ".nfo"})

    def test_extra_tokens(self):
        result = build_extension_filter(extra=["MKV", ".iso"])
        assert result == frozenset({".mkv", ".iso"})

    def test_nothing_checked_means_no_filter(self):
        """No toggles and no custom text yields an empty set (match all)."""
        toggles = {ext: False for ext in VIDEO_EXTENSIONS}
        result = build_extension_filter(toggles, "")
        assert result == frozenset()
        assert matches_extension(".anything", result)


class TestMatching:
    """Tests for matches_extension and matches_name."""

    def test_extension_case_insensitive(self):
        assert matches_extension(".MP4", frozenset({".mp4"}))

    def test_extension_not_in_filter(self):
        assert not matches_extension(".txt", frozenset({".mp4"}))

    def test_no_extension_with_filter(self):
        assert not matches_extension("", frozenset({".mp4"}))

    def test_empty_filter_matches_all(self):
        assert matches_extension("", frozenset())
        assert matches_extension(".txt", frozenset())

    def test_name_contains_case_insensitive(self):
        assert matches_name("Holiday_2023.MP4", "holiday")
        assert matches_name("my HOLIDAY.mkv", "Holiday")

    def test_name_not_contained(self):
        assert not matches_name("work.mp4", "holiday")

    def test_empty_name_filter(self):
        assert matches_name("anything.bin", "")
