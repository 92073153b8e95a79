"""CLI interface — thin wrapper over CourseService."""

import asyncio
import logging
from pathlib import Path

import typer

from courseplay.config import settings
from courseplay.ingestion.youtube import ExtractionError
from courseplay.media.handles import HandleError, LocalDirectoryHandle
from courseplay.media.resolver import MediaLoadError, PermissionDeniedError
from courseplay.media.sources import LocalSource, NeedsFolderAccess, RemoteSource
from courseplay.service import (
    AmbiguousVideoError,
    CourseNotFoundError,
    CourseService,
    VideoAlreadyExistsError,
    VideoNotFoundError,
)
from courseplay.storage.sqlite import SQLiteLibraryRepository


app = typer.Typer(
    name="courseplay",
    help="Play local and remote course videos with resume, captions and progress tracking.",
    no_args_is_help=True,
)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    """courseplay command line."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _get_service() -> CourseService:
    """Create a service instance with default dependencies."""
    settings.ensure_dirs()
    return CourseService(repository=SQLiteLibraryRepository())


def _resolve_or_exit(svc: CourseService, query: str):
    """Resolve a video from human-friendly input or exit with error."""
    try:
        return svc.resolve_video(query)
    except VideoNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    except AmbiguousVideoError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)


def _fmt_time(seconds: float) -> str:
    mins, secs = divmod(int(seconds), 60)
    hours, mins = divmod(mins, 60)
    return f"{hours}:{mins:02d}:{secs:02d}" if hours else f"{mins}:{secs:02d}"


@app.command()
def add_course(folder: Path = typer.Argument(..., help="Folder containing the course videos.")) -> None:
    """Import a local folder as a course."""
    svc = _get_service()
    try:
        course, videos = svc.add_course_from_folder(folder)
    except (HandleError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Added course: {course.title}")
    typer.echo(f"   ID:     {course.id}")
    typer.echo(f"   Videos: {len(videos)}")


@app.command()
def add_remote(
    url: str = typer.Argument(..., help="YouTube or Google Drive video URL."),
    course: str | None = typer.Option(None, "--course", "-c", help="Course ID to add the video to."),
) -> None:
    """Add a YouTube or Google Drive video to the library."""
    svc = _get_service()
    try:
        video = svc.add_remote_video(url, course_id=course)
    except VideoAlreadyExistsError as e:
        typer.echo(f"⚠️  {e}", err=True)
        raise typer.Exit(code=1)
    except (ExtractionError, CourseNotFoundError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Added: {video.title}")
    typer.echo(f"   ID:       {video.id}")
    typer.echo(f"   Duration: {video.duration:.0f}s")
    typer.echo(f"   Captions: {len(video.caption_chunks)} word(s)")


@app.command(name="list")
def list_videos(
    course: str | None = typer.Option(None, "--course", "-c", help="Only list videos of this course."),
) -> None:
    """List videos in playlist order."""
    svc = _get_service()
    videos = svc.list_videos(course)
    if not videos:
        typer.echo("Library is empty. Use 'courseplay add-course <folder>' to add a course.")
        return
    for i, v in enumerate(videos, 1):
        done = "✔" if v.is_completed else " "
        typer.echo(
            f"  {i}. [{done}] {v.id}  {v.watch_progress * 100:>3.0f}%  {v.module:<20s}  {v.title}"
        )


@app.command()
def info(query: str = typer.Argument(..., help="Video ID, index number, or search text.")) -> None:
    """Show full details for a video."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    typer.echo(f"Title:       {video.title}")
    typer.echo(f"Module:      {video.module or '(none)'}")
    typer.echo(f"Duration:    {_fmt_time(video.duration)}")
    if video.url or video.youtube_id or video.drive_file_id:
        typer.echo(f"URL:         {video.url or video.youtube_id or video.drive_file_id}")
    else:
        typer.echo(f"Path:        {video.relative_path or video.file_name}")
    typer.echo(f"Position:    {_fmt_time(video.last_watched_position)} ({video.watch_progress * 100:.0f}%)")
    typer.echo(f"Watched:     {video.watch_count} time(s)")
    typer.echo(f"Completed:   {'yes' if video.is_completed else 'no'}")
    typer.echo(f"Captions:    {len(video.caption_chunks)} word(s)")


@app.command()
def resolve(
    query: str = typer.Argument(..., help="Video ID, index number, or search text."),
    folder: Path | None = typer.Option(None, "--folder", "-f", help="Pick this course folder first."),
    root: Path | None = typer.Option(None, "--root", "-r", help="Grant this folder as the root of all courses."),
) -> None:
    """Show where a video would play from."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    try:
        if folder is not None:
            svc.cache_folder(folder)
        if root is not None:
            svc.set_root_folder(LocalDirectoryHandle(root))
        source = asyncio.run(svc.resolve_source(video.id))
    except (HandleError, PermissionDeniedError, MediaLoadError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    if isinstance(source, RemoteSource):
        typer.echo(f"🌐 Remote ({source.target.provider}): {source.url}")
        if source.target.embed_url:
            typer.echo(f"   Embed: {source.target.embed_url}")
    elif isinstance(source, LocalSource):
        typer.echo(f"🎬 Local via {source.origin}: {source.media_url.source.name}")
        typer.echo(f"   URL: {source.media_url.href}")
        source.release()
    elif isinstance(source, NeedsFolderAccess):
        name = source.folder_name or "the course folder"
        typer.echo(f"📁 Folder access needed: select {name} with --folder or --root.", err=True)
        raise typer.Exit(code=2)


@app.command()
def captions(
    query: str = typer.Argument(..., help="Video ID, index number, or search text."),
    fmt: str = typer.Option("vtt", "--format", help="Output format: vtt or srt."),
    output: str | None = typer.Option(None, "--output", "-o", help="Save captions to file."),
) -> None:
    """Export a video's captions as WebVTT or SubRip."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    try:
        rendered = svc.export_captions(video.id, fmt=fmt)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    if output:
        Path(output).write_text(rendered, encoding="utf-8")
        typer.echo(f"✅ Captions saved: {output}")
    else:
        typer.echo(rendered)


@app.command()
def progress(
    query: str = typer.Argument(..., help="Video ID, index number, or search text."),
    position: float = typer.Argument(..., help="Playback position in seconds."),
    duration: float | None = typer.Option(None, "--duration", "-d", help="Video duration in seconds."),
) -> None:
    """Record a playback position for a video."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    updated = svc.update_progress(video.id, position, duration)
    typer.echo(f"⏱️  {updated.title}: {_fmt_time(updated.last_watched_position)} ({updated.watch_progress * 100:.0f}%)")


@app.command()
def complete(
    query: str = typer.Argument(..., help="Video ID, index number, or search text."),
    undo: bool = typer.Option(False, "--undo", help="Clear the completion flag instead."),
) -> None:
    """Mark a video as completed."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    svc.mark_complete(video.id, not undo)
    if undo:
        typer.echo(f"↩️  Not completed: {video.title}")
    else:
        typer.echo(f"✅ Completed: {video.title}")


@app.command()
def remove(query: str = typer.Argument(..., help="Video ID, index number, or search text.")) -> None:
    """Remove a video from the library."""
    svc = _get_service()
    video = _resolve_or_exit(svc, query)
    svc.remove_video(video.id)
    typer.echo(f"🗑️  Removed: {video.title} ({video.id})")
