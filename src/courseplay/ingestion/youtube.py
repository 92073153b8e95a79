"""YouTube video import via yt-dlp."""

import json
import logging
from urllib.request import urlopen

import yt_dlp

from courseplay.media.remote import parse_youtube_id
from courseplay.models import CaptionChunk, Video

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when video extraction fails."""


class YouTubeExtractor:
    """Builds remote Video records from YouTube URLs.

    Single responsibility: given a YouTube URL, return a Video whose
    caption chunks are word-timed tokens ready for caption grouping.
    All yt-dlp interaction is encapsulated here.
    """

    _LANG_PREFERENCE = ("en", "en-orig", "en-US", "en-GB")

    def extract(self, url: str, course_id: str | None = None) -> Video:
        """Extract metadata and word-level captions from a YouTube video URL.

        Args:
            url: YouTube video URL in any standard format.
            course_id: Course the video will belong to.

        Returns:
            Populated Video model.

        Raises:
            ExtractionError: If extraction fails.
        """
        video_id = self.parse_video_id(url)
        info = self._fetch_info(url)

        return Video(
            course_id=course_id,
            title=info.get("title", "") or video_id,
            duration=float(info.get("duration", 0) or 0),
            youtube_id=video_id,
            url=f"https://www.youtube.com/watch?v={video_id}",
            caption_chunks=self._extract_chunks(info),
        )

    @staticmethod
    def parse_video_id(url: str) -> str:
        """Extract the 11-character video ID from a YouTube URL.

        Raises:
            ExtractionError: If the URL cannot be parsed.
        """
        video_id = parse_youtube_id(url)
        if video_id is None:
            raise ExtractionError(f"Could not extract video ID from URL: {url}")
        return video_id

    def _fetch_info(self, url: str) -> dict:
        """Fetch video info dict from yt-dlp without downloading media."""
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "writesubtitles": True,
            "writeautomaticsub": True,
            "subtitleslangs": list(self._LANG_PREFERENCE),
            "subtitlesformat": "json3",
            "skip_download": True,
        }
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
                if info is None:
                    raise ExtractionError(f"yt-dlp returned no info for: {url}")
                return info
        except yt_dlp.utils.DownloadError as e:
            raise ExtractionError(f"Failed to extract video info: {e}") from e

    def _extract_chunks(self, info: dict) -> list[CaptionChunk]:
        """Extract caption chunks, preferring manual over auto-generated."""
        subtitles = info.get("subtitles") or {}
        auto_captions = info.get("automatic_captions") or {}

        sub_data = self._find_json3(subtitles) or self._find_json3(auto_captions)
        if not sub_data:
            logger.warning("No English captions available for: %s", info.get("id"))
            return []

        return self._parse_json3(sub_data)

    def _find_json3(self, subs: dict) -> dict | None:
        """Find and download json3 subtitle data for the best English variant."""
        for lang in self._LANG_PREFERENCE:
            data = self._get_json3_for_lang(subs, lang)
            if data:
                return data

        # Fallback: any en-* variant
        for lang in subs:
            if lang.startswith("en"):
                data = self._get_json3_for_lang(subs, lang)
                if data:
                    return data

        return None

    def _get_json3_for_lang(self, subs: dict, lang: str) -> dict | None:
        formats = subs.get(lang)
        if not formats:
            return None
        for fmt in formats:
            if fmt.get("ext") == "json3":
                return self._download_json(fmt["url"])
        return None

    def _download_json(self, url: str) -> dict | None:
        """Download and parse JSON from a URL."""
        try:
            with urlopen(url, timeout=30) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except Exception as e:
            logger.warning("Failed to download caption data: %s", e)
            return None

    @staticmethod
    def _parse_json3(data: dict) -> list[CaptionChunk]:
        """Split YouTube json3 events into word-timed chunks.

        YouTube json3 structure:
            {"events": [{"tStartMs": int, "dDurationMs": int,
                         "segs": [{"utf8": str, "tOffsetMs": int}]}]}

        Each seg becomes one chunk ending where the next seg (or the
        event) ends.
        """
        chunks = []
        for event in data.get("events", []):
            segs = [s for s in (event.get("segs") or []) if s.get("utf8", "").strip()]
            if not segs:
                continue

            event_start = event.get("tStartMs", 0)
            event_end = event_start + event.get("dDurationMs", 0)
            for i, seg in enumerate(segs):
                start_ms = event_start + seg.get("tOffsetMs", 0)
                if i + 1 < len(segs):
                    end_ms = event_start + segs[i + 1].get("tOffsetMs", 0)
                else:
                    end_ms = max(event_end, start_ms)
                chunks.append(CaptionChunk(
                    text=seg["utf8"].strip(),
                    timestamp=[start_ms / 1000.0, end_ms / 1000.0],
                ))

        return chunks
