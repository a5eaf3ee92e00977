"""Assemble rendered clips and silences into one narration track."""

from pydub import AudioSegment

from paper_narrator.models import SilenceToken, Token


def _silence(seconds: float) -> AudioSegment:
    return AudioSegment.silent(duration=int(round(seconds * 1000)))


def assemble(tokens: tuple[Token, ...], clips: dict[int, AudioSegment]) -> AudioSegment:
    """Concatenate the narration in token order.

    Silence tokens become silent gaps of their own duration; speed never
    scales them. Spoken tokens without a clip are skipped.
    """
    result = AudioSegment.silent(duration=0)
    for i, token in enumerate(tokens):
        if isinstance(token, SilenceToken):
            result += _silence(token.duration)
        elif i in clips:
            result += clips[i]
    return result


def load_clips(paths: dict[int, str]) -> dict[int, AudioSegment]:
    """Load rendered clip files keyed by token index."""
    return {i: AudioSegment.from_mp3(path) for i, path in paths.items()}
