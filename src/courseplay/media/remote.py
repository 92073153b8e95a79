"""Recognition of remotely embedded videos (YouTube, Google Drive)."""

import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from courseplay.models import Video

YOUTUBE = "youtube"
DRIVE = "drive"

_YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?.*v=)([\w-]{11})"),
    re.compile(r"(?:youtu\.be/)([\w-]{11})"),
    re.compile(r"(?:youtube\.com/embed/)([\w-]{11})"),
    re.compile(r"(?:youtube\.com/v/)([\w-]{11})"),
]

_DRIVE_PATTERNS = [
    re.compile(r"drive\.google\.com/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"drive\.google\.com/.*[?&]id=([a-zA-Z0-9_-]+)"),
]


@dataclass(frozen=True)
class RemoteTarget:
    """A recognised remote video: provider, id and the URLs to play it."""

    provider: str
    remote_id: str | None
    url: str
    embed_url: str | None


def parse_youtube_id(url: str) -> str | None:
    """Extract the 11-character video id from any standard YouTube URL."""
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    # Fallback: query parameter parsing
    parsed = urlparse(url)
    video_id = parse_qs(parsed.query).get("v", [None])[0]
    if video_id and len(video_id) == 11:
        return video_id
    return None


def parse_drive_id(url: str) -> str | None:
    for pattern in _DRIVE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def is_youtube_url(url: str | None) -> bool:
    return bool(url) and ("youtube.com" in url or "youtu.be" in url)


def is_drive_url(url: str | None) -> bool:
    return bool(url) and "drive.google.com" in url


def youtube_embed_url(video_id: str) -> str:
    return f"https://www.youtube.com/embed/{video_id}?enablejsapi=1&modestbranding=1&rel=0"


def remote_target(video: Video) -> RemoteTarget | None:
    """Classify a video as a remote embed, or return None for local media."""
    if video.youtube_id or is_youtube_url(video.url):
        video_id = video.youtube_id or parse_youtube_id(video.url)
        url = video.url or f"https://www.youtube.com/watch?v={video_id}"
        embed = youtube_embed_url(video_id) if video_id else None
        return RemoteTarget(provider=YOUTUBE, remote_id=video_id, url=url, embed_url=embed)

    if video.drive_file_id or is_drive_url(video.url):
        file_id = video.drive_file_id or parse_drive_id(video.url)
        url = video.url or f"https://drive.google.com/uc?export=download&id={file_id}"
        embed = f"https://drive.google.com/file/d/{file_id}/preview" if file_id else None
        return RemoteTarget(provider=DRIVE, remote_id=file_id, url=url, embed_url=embed)

    return None
