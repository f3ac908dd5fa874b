"""Audio Player — wraps Gemini's raw PCM in WAV and plays it with pygame."""

import asyncio
import io
import os
import sys
import wave

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
import pygame

from kindyspell.config import get_config

SAMPLE_WIDTH = 2  # 16-bit little-endian
CHANNELS = 1
POLL_INTERVAL = 0.05


def pcm_to_wav(pcm: bytes, sample_rate: int) -> bytes:
    """Wrap raw PCM frames in a WAV container. A trailing half-frame is dropped."""
    usable = len(pcm) - (len(pcm) % (SAMPLE_WIDTH * CHANNELS))
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(CHANNELS)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm[:usable])
    return buffer.getvalue()


def clip_duration(pcm: bytes, sample_rate: int) -> float:
    """Playback length of a PCM payload in seconds."""
    return (len(pcm) // (SAMPLE_WIDTH * CHANNELS)) / sample_rate


class MixerSink:
    """Plays clips through pygame.mixer and waits until the channel goes quiet.

    Any object with an async play(wav_bytes, duration) method can stand in
    for this sink.
    """

    def __init__(self, sample_rate: int):
        self.sample_rate = sample_rate

    def _ensure_mixer(self) -> None:
        if not pygame.mixer.get_init():
            pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=CHANNELS)

    async def play(self, wav_bytes: bytes, duration: float) -> None:
        self._ensure_mixer()
        sound = pygame.mixer.Sound(file=io.BytesIO(wav_bytes))
        channel = sound.play()
        await asyncio.sleep(duration)
        # The mixer may lag the nominal clip length slightly
        while channel is not None and channel.get_busy():
            await asyncio.sleep(POLL_INTERVAL)


_default_sink: MixerSink | None = None


def default_sink() -> MixerSink:
    """Shared mixer sink at the configured sample rate."""
    global _default_sink
    if _default_sink is None:
        _default_sink = MixerSink(get_config().get("audio_sample_rate", 24000))
    return _default_sink


async def play_audio(payload: bytes | None, sink=None) -> bool:
    """Decode a PCM payload and play it to completion.

    Returns True once playback finished, False when there was nothing to
    play or playback failed. Failures are logged, never raised.
    """
    if not payload or len(payload) < SAMPLE_WIDTH * CHANNELS:
        return False

    sample_rate = get_config().get("audio_sample_rate", 24000)
    try:
        sink = sink or default_sink()
        wav_bytes = pcm_to_wav(payload, sample_rate)
        await sink.play(wav_bytes, clip_duration(payload, sample_rate))
    except Exception as exc:
        print(f"[KindySpell] Audio playback failed: {exc!r}", file=sys.stderr)
        return False
    return True
