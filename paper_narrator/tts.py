"""Offline narration rendering via edge-tts with retry logic."""

import asyncio
import logging
import os
import time

import edge_tts

from paper_narrator.constants import (
    NARRATOR_VOICE,
    TTS_RATE_MAX_PERCENT,
    TTS_RATE_MIN_PERCENT,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)
from paper_narrator.models import HeadingToken, SentenceToken, StructuralRecord, Token
from paper_narrator.sequence import token_text

logger = logging.getLogger(__name__)


def rate_string(speed: float) -> str:
    """Convert a speed factor to an edge-tts relative rate: 1.25 → "+25%"."""
    percent = round((speed - 1.0) * 100)
    percent = max(TTS_RATE_MIN_PERCENT, min(TTS_RATE_MAX_PERCENT, percent))
    return f"{percent:+d}%"


def _clip_written(path: str) -> bool:
    return os.path.exists(path) and os.path.getsize(path) > 0


async def _save_clip(text: str, voice: str, output_path: str, rate: str) -> None:
    await edge_tts.Communicate(text, voice, rate=rate).save(output_path)


def generate_single(text: str, voice: str, output_path: str, rate: str = "+0%") -> None:
    """Render one clip, retrying with exponential backoff.

    An empty output file counts as a failed attempt. Once every attempt is
    used up the last error is raised.
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        if attempt:
            delay = TTS_RETRY_BASE_DELAY * 2 ** (attempt - 1)
            logger.warning("TTS attempt %d/%d failed (%s), retrying in %.1fs",
                           attempt, TTS_RETRY_COUNT, last_error, delay)
            time.sleep(delay)
        try:
            asyncio.run(_save_clip(text, voice, output_path, rate))
        except Exception as e:
            last_error = e
            continue
        if _clip_written(output_path):
            return
        last_error = RuntimeError(f"edge-tts wrote an empty clip for {text[:50]!r}")

    raise last_error


def clip_filename(index: int, token: Token) -> str:
    kind = "heading" if isinstance(token, HeadingToken) else "sentence"
    return f"{index:04d}_{kind}.mp3"


def generate_clips(
    tokens: tuple[Token, ...],
    record: StructuralRecord,
    clip_dir: str,
    voice: str = NARRATOR_VOICE,
    rate: str = "+0%",
) -> dict[int, str]:
    """Render one clip per heading and sentence token.

    Returns {token index: clip path}. Existing non-empty clips are reused.
    """
    speakable = [
        (i, token) for i, token in enumerate(tokens)
        if isinstance(token, (HeadingToken, SentenceToken))
    ]
    total = len(speakable)
    paths = {}

    for n, (i, token) in enumerate(speakable, start=1):
        filename = clip_filename(i, token)
        output_path = os.path.join(clip_dir, filename)

        if _clip_written(output_path):
            print(f"  [skip] Clip {n}/{total}: {filename}")
            paths[i] = output_path
            continue

        text = token_text(token, record)
        if not text:
            continue
        print(f"  Generating clip {n}/{total}: {filename}")
        generate_single(text, voice, output_path, rate=rate)
        paths[i] = output_path

    return paths
