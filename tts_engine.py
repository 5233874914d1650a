"""tts_engine.py — ElevenLabs narration of chapter text into raw PCM."""

import re
import time

from tqdm import tqdm

from errors import NarrationError

CHUNK_SIZE_CHARS = 4800
MAX_RETRIES = 3
RETRY_DELAY = 5
OUTPUT_FORMAT = "pcm_24000"   # 16-bit mono PCM, no header
DEFAULT_MODEL_ID = "eleven_turbo_v2_5"


def split_into_sentence_chunks(text: str, max_chars: int = CHUNK_SIZE_CHARS) -> list[str]:
    """
    Split text into chunks of at most max_chars.
    Paragraph breaks are preferred; long paragraphs are cut at sentence ends,
    and anything still too long is cut at the last space.
    """
    pieces = []
    for para in (p.strip() for p in text.split("\n\n")):
        if not para:
            continue
        pieces.extend(_split_sentences(para) if len(para) > max_chars else [para])

    chunks = []
    current = ""
    for piece in pieces:
        if not current:
            current = piece
        elif len(current) + len(piece) + 2 > max_chars:
            chunks.append(current)
            current = piece
        else:
            current = f"{current} {piece}"
    if current:
        chunks.append(current)

    result = []
    for chunk in chunks:
        while len(chunk) > max_chars:
            cut = chunk.rfind(" ", 0, max_chars)
            if cut == -1:
                cut = max_chars
            result.append(chunk[:cut].strip())
            chunk = chunk[cut:].strip()
        if chunk:
            result.append(chunk)
    return [c for c in result if c]


def _split_sentences(text: str) -> list[str]:
    # Break after .!? when the next sentence opens with a capital or a quote
    parts = re.split(r'(?<=[.!?])\s+(?=[A-Z"\u2018\u201c\u2019])', text)
    return [p.strip() for p in parts if p.strip()]


def _is_retryable(error: Exception) -> bool:
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status == 429 or status >= 500
    message = str(error).lower()
    return "429" in message or "rate" in message


def synthesize_chunk(client, text: str, voice_id: str, model_id: str) -> bytes:
    """Call ElevenLabs TTS for one chunk and return its raw PCM."""
    from elevenlabs import VoiceSettings

    delay = RETRY_DELAY
    last_error = None
    for attempt in range(MAX_RETRIES):
        try:
            audio = client.text_to_speech.convert(
                voice_id=voice_id,
                text=text,
                model_id=model_id,
                voice_settings=VoiceSettings(
                    stability=0.5,
                    similarity_boost=0.75,
                    style=0.0,
                    use_speaker_boost=True,
                ),
                output_format=OUTPUT_FORMAT,
            )
            return b"".join(audio)
        except Exception as e:
            if not _is_retryable(e):
                raise NarrationError(f"TTS request failed: {e}") from e
            last_error = e
            print(f"\n  Rate limit / server error (attempt {attempt + 1}/{MAX_RETRIES}): {e}")
            time.sleep(delay)
            delay *= 2

    raise NarrationError(f"TTS failed after {MAX_RETRIES} attempts: {last_error}") from last_error


class Narrator:
    """Synthesis boundary: chapter text in, raw PCM out."""

    def __init__(self, client, voice_id: str, model_id: str = DEFAULT_MODEL_ID, show_progress: bool = True):
        self.client = client
        self.voice_id = voice_id
        self.model_id = model_id
        self.show_progress = show_progress

    def synthesize(self, text: str) -> bytes:
        chunks = split_into_sentence_chunks(text)
        if not chunks:
            raise NarrationError("Chapter has no text to narrate")

        pcm = bytearray()
        with tqdm(
            total=len(chunks),
            desc="  Narrating",
            unit="chunk",
            leave=False,
            disable=not self.show_progress or len(chunks) == 1,
        ) as pbar:
            for chunk in chunks:
                pcm += synthesize_chunk(self.client, chunk, self.voice_id, self.model_id)
                # Keep every chunk frame-aligned before appending the next
                if len(pcm) % 2:
                    pcm = pcm[:-1]
                pbar.update(1)
        return bytes(pcm)
