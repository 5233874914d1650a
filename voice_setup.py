"""voice_setup.py — Pick the ElevenLabs narration voice and remember it in .env."""

from pathlib import Path

from dotenv import set_key

ENV_FILE = Path(".env")

# ElevenLabs default fallback voice (Aria - neutral, natural)
DEFAULT_VOICE_ID = "9BWtsMINqrJLrRacOk9x"


def save_voice_id(voice_id: str, env_file: Path = ENV_FILE) -> None:
    """Persist voice_id to .env for future runs."""
    env_file.touch(exist_ok=True)
    set_key(str(env_file), "VOICE_ID", voice_id)
    print(f"  Saved VOICE_ID={voice_id} to {env_file}")


def search_voice_library(client, query: str = "narrator") -> str | None:
    """Return the voice_id of the first shared-library voice matching `query`, or None."""
    print(f"  Searching ElevenLabs Voice Library for '{query}'...")
    try:
        results = client.voices.get_shared(search=query, page_size=5)
    except Exception as e:
        print(f"  Voice Library search failed: {e}")
        return None

    voices = getattr(results, "voices", None) or []
    voice_id = getattr(voices[0], "voice_id", None) if voices else None
    if not voice_id:
        print("  No usable voice found in library.")
        return None

    voice = voices[0]
    name = getattr(voice, "name", "unknown")
    owner = getattr(voice, "public_owner_id", None) or getattr(voice, "public_user_id", None)
    print(f"  Found: '{name}' (id: {voice_id})")
    if owner:
        try:
            client.voices.add_sharing_voice(public_user_id=owner, voice_id=voice_id, name=name)
            print(f"  Added '{name}' to your account.")
        except Exception as e:
            # Adding a voice twice is reported as an error by the API
            if "already" not in str(e).lower() and "exists" not in str(e).lower():
                print(f"  Warning: could not add voice to account: {e}")
    return voice_id


def setup_voice(client, saved_voice_id: str | None = None, use_library: bool = False) -> str:
    """
    Resolve the narration voice:
    1. a saved or explicit voice ID
    2. ElevenLabs Voice Library search (if use_library=True), saved to .env
    3. the ElevenLabs default voice
    """
    if saved_voice_id:
        return saved_voice_id

    if use_library:
        voice_id = search_voice_library(client)
        if voice_id:
            save_voice_id(voice_id)
            return voice_id

    print(f"  Using default ElevenLabs voice (Aria, id: {DEFAULT_VOICE_ID})")
    return DEFAULT_VOICE_ID
