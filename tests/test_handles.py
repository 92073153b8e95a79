# tests/test_handles.py
"""Tests for local file and folder capabilities."""

import pytest

from courseplay.media.handles import (
    HandleError,
    LocalDirectoryHandle,
    LocalFileHandle,
    PermissionState,
    natural_sort_key,
    pick_folder_files,
)


class TestNaturalSort:
    def test_numbers_sort_numerically(self):
        names = ["10-end.mp4", "2-middle.mp4", "1-start.mp4"]
        assert sorted(names, key=natural_sort_key) == ["1-start.mp4", "2-middle.mp4", "10-end.mp4"]

    def test_case_insensitive(self):
        assert natural_sort_key("Intro") == natural_sort_key("intro")


class TestPickFolderFiles:
    def test_relative_paths_start_with_folder_name(self, course_folder):
        picked = pick_folder_files(course_folder)
        assert picked.folder_name == "01_Python_Basics"
        paths = [f.relative_path for f in picked.files]
        assert "01_Python_Basics/01-intro.mp4" in paths
        assert "01_Python_Basics/02_Loops/01_for_loops.mp4" in paths
        assert all(p.startswith("01_Python_Basics/") for p in paths)

    def test_only_files_listed(self, course_folder):
        picked = pick_folder_files(course_folder)
        assert len(picked.files) == 3

    def test_picked_file_reads_bytes(self, course_folder):
        picked = pick_folder_files(course_folder)
        intro = next(f for f in picked.files if f.name == "01-intro.mp4")
        assert intro.read_bytes() == b"intro-bytes"
        assert intro.size == len(b"intro-bytes")

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(HandleError):
            pick_folder_files(tmp_path / "missing")


class TestLocalFileHandle:
    @pytest.mark.asyncio
    async def test_existing_file_granted(self, course_folder):
        handle = LocalFileHandle(course_folder / "01-intro.mp4")
        assert await handle.query_permission() == PermissionState.GRANTED
        assert await handle.request_permission() == PermissionState.GRANTED

    @pytest.mark.asyncio
    async def test_missing_file_not_granted(self, tmp_path):
        handle = LocalFileHandle(tmp_path / "gone.mp4")
        assert await handle.query_permission() == PermissionState.PROMPT
        assert await handle.request_permission() == PermissionState.DENIED

    @pytest.mark.asyncio
    async def test_get_file(self, course_folder):
        source = await LocalFileHandle(course_folder / "01-intro.mp4").get_file()
        assert source.name == "01-intro.mp4"
        assert source.read_bytes() == b"intro-bytes"

    @pytest.mark.asyncio
    async def test_get_file_missing_raises(self, tmp_path):
        with pytest.raises(HandleError):
            await LocalFileHandle(tmp_path / "gone.mp4").get_file()


class TestLocalDirectoryHandle:
    @pytest.mark.asyncio
    async def test_entries_naturally_sorted(self, course_folder):
        entries = await LocalDirectoryHandle(course_folder).entries()
        assert [e.name for e in entries] == ["01-intro.mp4", "02_Loops", "notes.txt"]
        assert entries[1].kind == "directory"
        assert entries[0].kind == "file"

    @pytest.mark.asyncio
    async def test_traversal(self, course_folder):
        root = LocalDirectoryHandle(course_folder.parent)
        course = await root.get_directory("01_Python_Basics")
        module = await course.get_directory("02_Loops")
        handle = await module.get_file("01_for_loops.mp4")
        assert (await handle.get_file()).read_bytes() == b"loop-bytes"

    @pytest.mark.asyncio
    async def test_missing_children_raise(self, course_folder):
        handle = LocalDirectoryHandle(course_folder)
        with pytest.raises(HandleError):
            await handle.get_directory("nope")
        with pytest.raises(HandleError):
            await handle.get_file("nope.mp4")
        with pytest.raises(HandleError):
            await handle.get_file("02_Loops")

    @pytest.mark.asyncio
    async def test_entries_missing_folder_raises(self, tmp_path):
        with pytest.raises(HandleError):
            await LocalDirectoryHandle(tmp_path / "missing").entries()
