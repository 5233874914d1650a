"""audio_output.py — Decoded narration buffers and the pygame output they play through."""

import io
import os
import wave
from dataclasses import dataclass

from errors import NarrationError, PlaybackStartError

PCM_SAMPLE_RATE = 24000   # ElevenLabs "pcm_24000"
PCM_CHANNELS = 1
PCM_SAMPLE_WIDTH = 2      # signed 16-bit little-endian


@dataclass(frozen=True)
class AudioBuffer:
    pcm: bytes
    sample_rate: int = PCM_SAMPLE_RATE
    channels: int = PCM_CHANNELS
    sample_width: int = PCM_SAMPLE_WIDTH

    @property
    def frame_size(self) -> int:
        return self.channels * self.sample_width

    @property
    def frame_count(self) -> int:
        return len(self.pcm) // self.frame_size

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frame_count / self.sample_rate

    def offset_bytes(self, seconds: float) -> int:
        """Byte position of the frame at `seconds`, clamped to the buffer."""
        frame = int(max(0.0, seconds) * self.sample_rate)
        return min(frame, self.frame_count) * self.frame_size


def decode_audio(
    data: bytes,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
) -> AudioBuffer:
    """
    Turn synthesized audio into an AudioBuffer.
    Accepts headerless 16-bit PCM (what the TTS returns) or a RIFF/WAVE payload.
    """
    if not data:
        raise NarrationError("No audio data returned from TTS")

    if data[:4] == b"RIFF":
        try:
            with wave.open(io.BytesIO(data), "rb") as wav_file:
                width = wav_file.getsampwidth()
                sample_rate = wav_file.getframerate()
                channels = wav_file.getnchannels()
                pcm = wav_file.readframes(wav_file.getnframes())
        except (wave.Error, EOFError) as e:
            raise NarrationError(f"Could not decode WAV audio: {e}") from e
        if width != PCM_SAMPLE_WIDTH:
            raise NarrationError(f"Unsupported sample width: {width * 8}-bit")
    else:
        pcm = data

    frame_size = channels * PCM_SAMPLE_WIDTH
    usable = len(pcm) - (len(pcm) % frame_size)
    if usable <= 0:
        raise NarrationError("Audio payload is shorter than one frame")

    return AudioBuffer(pcm=bytes(pcm[:usable]), sample_rate=sample_rate, channels=channels)


class _ChannelHandle:
    """A started source. Can be stopped once; there is no pause."""

    def __init__(self, channel):
        self._channel = channel

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()
            self._channel = None


class PygameOutput:
    """
    Plays AudioBuffers through pygame.mixer.
    Each start() builds a fresh Sound from the buffer tail at `offset`;
    the mixer is (re)initialised to the buffer's format on demand.
    """

    def __init__(self):
        self._mixer_format = None

    def _ensure_mixer(self, buffer: AudioBuffer):
        os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
        import pygame

        wanted = (buffer.sample_rate, -8 * buffer.sample_width, buffer.channels)
        if pygame.mixer.get_init() and self._mixer_format == wanted:
            return pygame
        if pygame.mixer.get_init():
            pygame.mixer.quit()
        pygame.mixer.init(frequency=wanted[0], size=wanted[1], channels=wanted[2])
        self._mixer_format = wanted
        return pygame

    def start(self, buffer: AudioBuffer, offset: float) -> _ChannelHandle:
        try:
            pygame = self._ensure_mixer(buffer)
            sound = pygame.mixer.Sound(buffer=buffer.pcm[buffer.offset_bytes(offset):])
            channel = sound.play()
        except Exception as e:
            raise PlaybackStartError(f"Audio output could not start: {e}") from e
        if channel is None:
            raise PlaybackStartError("No free audio channel")
        return _ChannelHandle(channel)

    def close(self) -> None:
        if self._mixer_format is None:
            return
        import pygame

        if pygame.mixer.get_init():
            pygame.mixer.quit()
        self._mixer_format = None
