"""Tests for app.utils.paths module."""

from pathlib import Path

from app.utils.paths import safe_basename, staged_name, staged_path


class TestSafeBasename:
    """Tests for safe_basename function."""

    def test_plain_name_unchanged(self):
        assert safe_basename("a.mp3") == "a.mp3"

    def test_strips_posix_directories(self):
        """Should drop directory components from POSIX paths."""
        assert safe_basename("../../etc/passwd") == "passwd"

    def test_strips_windows_directories(self):
        """Should drop directory components from Windows paths."""
        assert safe_basename("C:\\Users\\bob\\talk.wav") == "talk.wav"

    def test_replaces_unsafe_characters(self):
        assert safe_basename("my*file?.mp3") == "my_file_.mp3"

    def test_keeps_spaces_and_dashes(self):
        assert safe_basename("meeting notes - 1.m4a") == "meeting notes - 1.m4a"

    def test_dot_only_name_becomes_empty(self):
        assert safe_basename("..") == ""


class TestStagedName:
    """Tests for staged_name function."""

    def test_timestamp_prefix(self):
        """Should prefix the sanitized name with the timestamp."""
        assert staged_name("a.mp3", timestamp_ns=123) == "123-a.mp3"

    def test_unusable_name_falls_back(self):
        assert staged_name("..", timestamp_ns=7) == "7-upload"

    def test_distinct_timestamps_give_distinct_names(self):
        assert staged_name("a.mp3", timestamp_ns=1) != staged_name("a.mp3", timestamp_ns=2)

    def test_default_timestamp_is_numeric(self):
        prefix, _, rest = staged_name("a.mp3").partition("-")
        assert prefix.isdigit()
        assert rest == "a.mp3"


class TestStagedPath:
    """Tests for staged_path function."""

    def test_joins_directory_and_name(self):
        assert staged_path("/srv/staging", "1-a.mp3") == Path("/srv/staging/1-a.mp3")

    def test_returns_path_object(self):
        assert isinstance(staged_path("/srv/staging", "x"), Path)
