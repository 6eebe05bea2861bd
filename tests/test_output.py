"""Tests for staged writes of generated files."""

import pytest

from autostruct.errors import WriteFailure
from autostruct.output import MARKER_FILE, write_artifacts


class TestWriteArtifacts:
    """Tests for write_artifacts."""

    def test_writes_into_new_directory(self, tmp_path):
        """Test a missing target is created with every file and the marker."""
        target = tmp_path / "models"

        written = write_artifacts({"users.rs": "pub struct Users {}\n", "mod.rs": "pub mod users;\n"}, target)

        assert written == [target.resolve() / "mod.rs", target.resolve() / "users.rs"]
        assert (target / "users.rs").read_text() == "pub struct Users {}\n"
        assert (target / MARKER_FILE).exists()

    def test_replaces_previous_output(self, tmp_path):
        """Test stale files from a previous run are removed."""
        target = tmp_path / "models"
        write_artifacts({"old.rs": "old\n", "mod.rs": "pub mod old;\n"}, target)

        write_artifacts({"new.rs": "new\n", "mod.rs": "pub mod new;\n"}, target)

        assert sorted(p.name for p in target.iterdir()) == [MARKER_FILE, "mod.rs", "new.rs"]

    def test_empty_directory_is_replaceable(self, tmp_path):
        """Test an existing empty directory is accepted."""
        target = tmp_path / "models"
        target.mkdir()

        write_artifacts({"mod.rs": "\n"}, target)

        assert (target / "mod.rs").exists()

    def test_refuses_foreign_directory(self, tmp_path):
        """Test a non-empty directory without the marker is left alone."""
        target = tmp_path / "src"
        target.mkdir()
        (target / "main.rs").write_text("fn main() {}\n")

        with pytest.raises(WriteFailure) as exc_info:
            write_artifacts({"mod.rs": "\n"}, target)

        assert MARKER_FILE in exc_info.value.message
        assert (target / "main.rs").read_text() == "fn main() {}\n"
        assert not (target / "mod.rs").exists()

    def test_refuses_file_target(self, tmp_path):
        """Test a regular file at the target path is not replaced."""
        target = tmp_path / "models"
        target.write_text("keep me")

        with pytest.raises(WriteFailure):
            write_artifacts({"mod.rs": "\n"}, target)

        assert target.read_text() == "keep me"

    def test_failure_keeps_previous_output(self, tmp_path):
        """Test a failed write leaves the previous output and no staging leftovers."""
        target = tmp_path / "models"
        write_artifacts({"mod.rs": "previous\n"}, target)

        # a.rs is written as a file, so a.rs/b.rs cannot be created
        with pytest.raises(WriteFailure):
            write_artifacts({"a.rs": "x", "a.rs/b.rs": "y"}, target)

        assert (target / "mod.rs").read_text() == "previous\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["models"]

    def test_unix_newlines(self, tmp_path):
        """Test files are written byte-for-byte with LF line endings."""
        target = tmp_path / "models"

        write_artifacts({"mod.rs": "a\nb\n"}, target)

        assert (target / "mod.rs").read_bytes() == b"a\nb\n"
