from __future__ import annotations

import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Protocol

from app_errors import classify_exception, user_message

logger = logging.getLogger(__name__)

MAX_CACHED_TRACKS = 6

_TIME_TAG_RE = re.compile(r"\[(\d{1,3}):(\d{1,2})(?:[.:](\d{1,3}))?\]")
_META_TAG_RE = re.compile(r"^\[([a-zA-Z#]+):(.*)\]$")
_WORD_TAG_RE = re.compile(r"<\d{1,3}:\d{1,2}(?:[.:]\d{1,3})?>")
_BILINGUAL_SEPARATORS = (" / ", " | ", " ｜ ", " // ")


@dataclass(frozen=True)
class LyricLine:
    timestamp_ms: int
    text: str
    translation: Optional[str] = None


@dataclass(frozen=True)
class ParsedLyrics:
    lines: tuple = ()
    metadata: dict = field(default_factory=dict)

    def __len__(self):
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


class LyricsProvider(Protocol):
    def get_parsed_lyrics(self, track_id) -> Optional[ParsedLyrics]:
        ...


def _tag_to_ms(minutes: str, seconds: str, frac: str | None) -> int:
    if frac is None:
        ms = 0
    elif len(frac) == 1:
        ms = int(frac) * 100
    elif len(frac) == 2:
        ms = int(frac) * 10
    else:
        ms = int(frac[:3])
    return (int(minutes) * 60 + int(seconds)) * 1000 + ms


def _split_bilingual(text):
    line = (text or "").strip()
    if not line:
        return "", None

    # Conservative separators to avoid over-splitting normal lyrics.
    for sep in _BILINGUAL_SEPARATORS:
        if sep in line:
            left, right = line.split(sep, 1)
            left = left.strip()
            right = right.strip()
            if left and right:
                return left, right
    return line, None


def parse_lrc(text) -> ParsedLyrics:
    """
    Parse LRC text into time-ordered lines.

    Supports several time tags on one line, metadata tags like [ar:] and [ti:],
    and strips enhanced word tags (<00:10.20>). Unsynced text yields no lines.
    """
    if not text:
        return ParsedLyrics()

    entries = []
    metadata = {}
    for order, raw in enumerate(str(text).splitlines()):
        line = raw.strip()
        if not line:
            continue

        stamps = []
        pos = 0
        while True:
            match = _TIME_TAG_RE.match(line, pos)
            if not match:
                break
            stamps.append(_tag_to_ms(match.group(1), match.group(2), match.group(3)))
            pos = match.end()

        if not stamps:
            meta = _META_TAG_RE.match(line)
            if meta:
                metadata[meta.group(1).strip().lower()] = meta.group(2).strip()
            continue

        content = _WORD_TAG_RE.sub("", line[pos:]).strip()
        primary, translation = _split_bilingual(content)
        for ts in stamps:
            entries.append((ts, order, LyricLine(ts, primary, translation)))

    # Stable on the source order for equal timestamps.
    entries.sort(key=lambda item: (item[0], item[1]))
    lines = _merge_translations([item[2] for item in entries])
    logger.debug("Lyrics parsed. lines=%s meta=%s", len(lines), sorted(metadata))
    return ParsedLyrics(lines=lines, metadata=metadata)


def _merge_translations(lines):
    """
    Bilingual LRC exports repeat the time tag for the translated row:
    [00:01.00]Hello world
    [00:01.00]你好世界
    The second row becomes the first row's translation.
    """
    merged = []
    for line in lines:
        prev = merged[-1] if merged else None
        if (
            prev is not None
            and prev.timestamp_ms == line.timestamp_ms
            and not prev.translation
            and line.text
        ):
            merged[-1] = replace(prev, translation=line.text)
            continue
        merged.append(line)
    return tuple(merged)


@dataclass(frozen=True)
class LyricsResult:
    """Outcome of one lyrics request; the error travels with its own request."""

    lyrics: Optional[ParsedLyrics] = None
    error_kind: Optional[str] = None

    @property
    def error_message(self) -> Optional[str]:
        return user_message(self.error_kind) if self.error_kind else None


class LyricsManager:
    """LyricsProvider over a raw-text fetcher, e.g. backend.get_lyrics.

    Safe to call from several worker threads at once.
    """

    def __init__(self, fetch_raw: Callable[[object], Optional[str]], max_cached=MAX_CACHED_TRACKS):
        self._fetch_raw = fetch_raw
        self._max_cached = max(1, int(max_cached))
        self._cache = OrderedDict()
        self._lock = threading.Lock()

    def get_parsed_lyrics(self, track_id) -> Optional[ParsedLyrics]:
        return self.load(track_id).lyrics

    def load(self, track_id) -> LyricsResult:
        if track_id is None:
            return LyricsResult(error_kind="not_found")

        with self._lock:
            cached = self._cache.get(track_id)
            if cached is not None:
                self._cache.move_to_end(track_id)
                return LyricsResult(cached)

        try:
            raw = self._fetch_raw(track_id)
        except Exception as e:
            kind = classify_exception(e)
            logger.warning("Lyrics fetch failed [%s]: track=%s err=%s", kind, track_id, e)
            return LyricsResult(error_kind=kind)

        if not raw:
            logger.debug("No lyrics returned for track=%s", track_id)
            return LyricsResult(error_kind="not_found")

        parsed = parse_lrc(raw)
        if parsed.is_empty:
            logger.debug("Lyrics for track=%s are not synced", track_id)
            return LyricsResult(error_kind="parse")

        with self._lock:
            self._cache[track_id] = parsed
            if len(self._cache) > self._max_cached:
                self._cache.popitem(last=False)
        return LyricsResult(parsed)

    def clear(self):
        with self._lock:
            self._cache.clear()
