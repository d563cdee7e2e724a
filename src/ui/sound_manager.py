"""
Sound Manager — short cues for break start, break end and warnings.

Uses pygame.mixer for lightweight audio. All sounds are generated
programmatically as WAV files on first run.
"""

from __future__ import annotations

import logging
import math
import struct
import wave
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

SOUNDS_DIR = Path(__file__).resolve().parent.parent / "assets" / "sounds"
SAMPLE_RATE = 22050

# Whether pygame mixer is available
_mixer_available = False
try:
    import pygame.mixer
    _mixer_available = True
except ImportError:
    logger.warning("pygame not installed; sounds will be disabled.")


class SoundManager:
    """Plays the named cues; silent when disabled or without an audio device."""

    def __init__(self, enabled: bool = True, volume: float = 0.5) -> None:
        self.enabled = enabled
        self.volume = max(0.0, min(volume, 1.0))
        self._initialized = False
        self._sounds: dict = {}

        if _mixer_available and enabled:
            self._init_mixer()

    def _init_mixer(self) -> None:
        try:
            pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=1, buffer=512)
        except pygame.error as e:
            logger.warning("Could not init audio: %s", e)
            return
        self._initialized = True
        self._load_sounds()
        logger.info("Sound manager initialized.")

    def _load_sounds(self) -> None:
        SOUNDS_DIR.mkdir(parents=True, exist_ok=True)

        for name, gen_func in SOUND_SPECS.items():
            path = SOUNDS_DIR / f"{name}.wav"
            if not path.exists():
                path.write_bytes(gen_func())
            try:
                self._sounds[name] = pygame.mixer.Sound(str(path))
                self._sounds[name].set_volume(self.volume)
            except pygame.error as e:
                logger.warning("Could not load sound %s: %s", name, e)

    def play(self, sound_name: str) -> None:
        """Play a named cue."""
        if not self.enabled or not self._initialized:
            return
        sound = self._sounds.get(sound_name)
        if sound:
            sound.set_volume(self.volume)
            sound.play()


# ── Sound generators (simple waveforms) ─────────────────────────────────────

def make_wav(samples: List[float], sample_rate: int = SAMPLE_RATE) -> bytes:
    """Pack raw samples into a WAV byte string."""
    buf = BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(b"".join(struct.pack("<h", int(s)) for s in samples))
    return buf.getvalue()


def _tone_sequence(freqs: List[int], note_sec: float, peak: int, gap_sec: float = 0.0) -> bytes:
    samples: List[float] = []
    for freq in freqs:
        dur = int(SAMPLE_RATE * note_sec)
        for t in range(dur):
            amp = peak * (1 - t / dur)  # fade out
            samples.append(amp * math.sin(2 * math.pi * freq * t / SAMPLE_RATE))
        samples.extend([0] * int(SAMPLE_RATE * gap_sec))
    return make_wav(samples)


def gen_break_start() -> bytes:
    """Descending chime: time to look away."""
    return _tone_sequence([784, 659, 523], 0.12, 8000, gap_sec=0.02)


def gen_break_end() -> bytes:
    """Ascending jingle: back to work."""
    return _tone_sequence([523, 659, 784, 1047], 0.12, 7000)


def gen_warning() -> bytes:
    """Short pop for advance warnings."""
    samples: List[float] = []
    for t in range(int(SAMPLE_RATE * 0.1)):
        amp = 10000 * math.exp(-t / (SAMPLE_RATE * 0.03))
        freq = 800 - (400 * t / (SAMPLE_RATE * 0.1))
        samples.append(amp * math.sin(2 * math.pi * freq * t / SAMPLE_RATE))
    return make_wav(samples)


SOUND_SPECS: Dict[str, Callable[[], bytes]] = {
    "break_start": gen_break_start,
    "break_end": gen_break_end,
    "break_warning": gen_warning,
}


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Synthesizes three short cues and plays them when the tray app asks.
#
# Key design decisions:
#   - Programmatic audio: sine waves with a linear or exponential fade are
#     enough for notification chimes, and ship no audio assets.
#   - pygame.mixer: lightweight, cross-platform. Only the mixer is used.
#   - Graceful degradation: without pygame (or without an audio device) the
#     app still runs, just silently.
#
# Data flow:
#   TrayApp receives BREAK_START → SoundManager.play("break_start")
