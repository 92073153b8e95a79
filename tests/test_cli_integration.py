# tests/test_cli_integration.py
"""CLI integration tests using Typer's CliRunner."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from courseplay.cli import app


runner = CliRunner()


@pytest.fixture
def mock_service(service):
    """Patch _get_service to return a service with in-memory backends."""
    with patch("courseplay.cli._get_service", return_value=service):
        yield service


class TestCLI:
    def test_add_course_and_list(self, mock_service, course_folder):
        result = runner.invoke(app, ["add-course", str(course_folder)])
        assert result.exit_code == 0
        assert "Python Basics" in result.stdout

        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "for loops" in result.stdout

    def test_add_course_missing_folder(self, mock_service, tmp_path):
        result = runner.invoke(app, ["add-course", str(tmp_path / "missing")])
        assert result.exit_code == 1

    def test_add_remote(self, mock_service):
        result = runner.invoke(app, ["add-remote", "https://www.youtube.com/watch?v=dQw4w9WgXcQ"])
        assert result.exit_code == 0
        assert "Added" in result.stdout

    def test_add_remote_duplicate(self, mock_service):
        runner.invoke(app, ["add-remote", "https://www.youtube.com/watch?v=dQw4w9WgXcQ"])
        result = runner.invoke(app, ["add-remote", "https://www.youtube.com/watch?v=dQw4w9WgXcQ"])
        assert result.exit_code == 1

    def test_info_by_index(self, mock_service, library):
        result = runner.invoke(app, ["info", "1"])
        assert result.exit_code == 0
        assert "Intro" in result.stdout

    def test_info_not_found(self, mock_service, library):
        result = runner.invoke(app, ["info", "quantum"])
        assert result.exit_code == 1

    def test_resolve_remote(self, mock_service, library, remote_video):
        result = runner.invoke(app, ["resolve", remote_video.id])
        assert result.exit_code == 0
        assert "youtube" in result.stdout

    def test_resolve_needs_folder(self, mock_service, library, local_video):
        result = runner.invoke(app, ["resolve", local_video.id])
        assert result.exit_code == 2

    def test_resolve_with_folder(self, mock_service, library, local_video, course_folder):
        result = runner.invoke(app, ["resolve", local_video.id, "--folder", str(course_folder)])
        assert result.exit_code == 0
        assert "Local via index" in result.stdout
        assert mock_service.session.blobs.active_count == 0

    def test_resolve_with_root(self, mock_service, library, local_video, course_folder):
        result = runner.invoke(app, ["resolve", local_video.id, "--root", str(course_folder.parent)])
        assert result.exit_code == 0
        assert "Local via root" in result.stdout

    def test_captions_to_file(self, mock_service, library, local_video, tmp_path):
        out = tmp_path / "captions.srt"
        result = runner.invoke(app, ["captions", local_video.id, "--format", "srt", "-o", str(out)])
        assert result.exit_code == 0
        assert "-->" in out.read_text()

    def test_captions_missing(self, mock_service, library, remote_video):
        result = runner.invoke(app, ["captions", remote_video.id])
        assert result.exit_code == 1

    def test_progress_and_complete(self, mock_service, library, local_video):
        result = runner.invoke(app, ["progress", local_video.id, "60"])
        assert result.exit_code == 0
        assert "50%" in result.stdout

        result = runner.invoke(app, ["complete", local_video.id])
        assert result.exit_code == 0
        assert library.get_video(local_video.id).is_completed is True

        runner.invoke(app, ["complete", local_video.id, "--undo"])
        assert library.get_video(local_video.id).is_completed is False

    def test_remove_and_list(self, mock_service, library, local_video, remote_video):
        runner.invoke(app, ["remove", local_video.id])
        result = runner.invoke(app, ["remove", remote_video.id])
        assert result.exit_code == 0
        assert "Removed" in result.stdout

        result = runner.invoke(app, ["list"])
        assert "empty" in result.stdout.lower()

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()
