"""Media Providers — word illustrations and spoken prompts from Gemini.

Both calls return None instead of raising: a missing picture or a silent
prompt must never stop a child from playing.
"""

import base64
import hashlib
import sys
from collections import OrderedDict

from google import genai
from google.genai import types as genai_types

from kindyspell.config import get_api_key, get_config
from kindyspell.utils.parsing import generate_with_retry

IMAGE_PROMPT = (
    "Draw a cute, simple, flat vector illustration of a {word}. "
    "Solid pastel background. Minimalist style for kids."
)

# Synthesized prompts repeat a lot ("The letter A"); least recently used clips go first.
_speech_cache: OrderedDict[str, bytes] = OrderedDict()


def _client() -> genai.Client:
    return genai.Client(api_key=get_api_key())


def _inline_parts(response) -> list:
    """Return the parts of the first candidate that carry inline data."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or not candidates[0].content or not candidates[0].content.parts:
        return []
    return [
        part for part in candidates[0].content.parts
        if part.inline_data is not None and part.inline_data.data
    ]


def hash_key(text: str, voice: str) -> str:
    key = f"{text}|{voice}".encode("utf-8", "ignore")
    return hashlib.sha1(key).hexdigest()


def clear_speech_cache() -> None:
    _speech_cache.clear()


def _remember(key: str, audio: bytes, limit: int) -> None:
    _speech_cache[key] = audio
    while len(_speech_cache) > max(limit, 0):
        _speech_cache.popitem(last=False)


async def fetch_image(word: str) -> str | None:
    """Return a data URI illustrating the word, or None on any failure."""
    if not get_api_key():
        return None

    config = get_config()
    try:
        response = await generate_with_retry(
            _client(),
            model=config["image_model"],
            contents=IMAGE_PROMPT.format(word=word.lower()),
        )
        parts = _inline_parts(response)
        if not parts:
            return None
        inline = parts[0].inline_data
        encoded = base64.b64encode(inline.data).decode("ascii")
        return f"data:{inline.mime_type or 'image/png'};base64,{encoded}"
    except Exception as exc:
        print(f"[KindySpell] Failed to generate image for '{word}': {exc!r}", file=sys.stderr)
        return None


async def synthesize_speech(text: str) -> bytes | None:
    """Return raw 16-bit mono PCM for the text, or None.

    Blank text and missing credentials short-circuit without a request.
    """
    if not get_api_key() or not text or not text.strip():
        return None

    config = get_config()
    voice = config.get("speech_voice", "Puck")
    key = hash_key(text, voice)
    if key in _speech_cache:
        _speech_cache.move_to_end(key)
        return _speech_cache[key]

    try:
        response = await generate_with_retry(
            _client(),
            model=config["speech_model"],
            contents=text,
            config=genai_types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=genai_types.SpeechConfig(
                    voice_config=genai_types.VoiceConfig(
                        prebuilt_voice_config=genai_types.PrebuiltVoiceConfig(voice_name=voice),
                    ),
                ),
            ),
        )
    except Exception as exc:
        print(f"[KindySpell] Failed to generate speech: {exc!r}", file=sys.stderr)
        return None

    parts = _inline_parts(response)
    if not parts:
        return None
    audio = parts[0].inline_data.data
    _remember(key, audio, config.get("speech_cache_size", 256))
    return audio
