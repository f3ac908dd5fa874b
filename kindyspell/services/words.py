"""Word Source — asks Gemini for a short, themed word list for toddlers.

Required output schema:
[
  {"word": "UPPERCASE word, 3-5 letters", "sentence": "very short sentence"}
]
"""

import json
import sys

from langchain_google_genai import ChatGoogleGenerativeAI

from kindyspell.config import get_api_key, get_config
from kindyspell.state import WordItem
from kindyspell.utils.parsing import ainvoke_with_retry, message_text, strip_fences

# Served when no API key is configured, so the game stays playable offline.
FALLBACK_WORDS: list[WordItem] = [
    {"word": "CAT", "sentence": "The cat says meow."},
    {"word": "DOG", "sentence": "The dog runs fast."},
    {"word": "SUN", "sentence": "The sun is hot."},
]

# Served when the model call fails or keeps returning garbage.
ERROR_WORDS: list[WordItem] = [
    {"word": "APPLE", "sentence": "A red apple."},
]

SYSTEM_PROMPT = """\
You pick words for a spelling game played by a 3-year-old toddler.

You MUST respond with a JSON array matching this exact schema:
[
  {
    "word": "string — the word in UPPERCASE, letters A-Z only",
    "sentence": "string — a very short, simple sentence using the word"
  }
]

Rules:
- Words must be simple, distinct, concrete English words a toddler knows.
- Words should be 3-5 letters long. No spaces, hyphens or apostrophes.
- Sentences must be one short sentence, friendly and easy to say aloud.
- Respond ONLY with the JSON array. No markdown fences, no commentary.
"""


def _build_user_prompt(category: str, count: int) -> str:
    return (
        f'Generate a list of {count} simple, distinct English words related to '
        f'the category "{category}" for a 3-year-old toddler.\n'
        "The words should be 3-5 letters long.\n"
        "Include a very short, simple sentence for each."
    )


def _validate_response(data, limit: int) -> list[WordItem]:
    """Validate and normalize the model's word list.

    Raises ValueError if the payload is not a list, or if it has items but
    none of them is usable. Individual malformed items are dropped with a
    warning; words are uppercased and deduplicated, and the list is capped
    at limit. An empty array is a valid (empty) answer.
    """
    if not isinstance(data, list):
        raise ValueError(f"Word list must be a JSON array, got {type(data).__name__}.")

    words: list[WordItem] = []
    seen = set()
    for i, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("word"), str):
            print(f"[KindySpell] Warning: dropping word item {i} without a 'word'.", file=sys.stderr)
            continue
        if not isinstance(item.get("sentence"), str):
            print(f"[KindySpell] Warning: dropping word item {i} without a 'sentence'.", file=sys.stderr)
            continue
        word = item["word"].strip().upper()
        if not word.isalpha():
            print(f"[KindySpell] Warning: dropping non-alphabetic word {word!r}.", file=sys.stderr)
            continue
        if word in seen:
            continue
        seen.add(word)
        words.append({"word": word, "sentence": item["sentence"].strip()})

    if data and not words:
        raise ValueError(f"None of the {len(data)} word items was usable.")
    return words[:limit]


async def fetch_word_list(category: str) -> list[WordItem]:
    """Return the word list for a category.

    Without an API key the built-in FALLBACK_WORDS are returned. Any failure
    of the model call, including a second malformed response, degrades to
    ERROR_WORDS; this function never raises for collaborator errors.
    """
    if not get_api_key():
        return [dict(item) for item in FALLBACK_WORDS]

    config = get_config()
    limit = config.get("words_per_category", 5)

    try:
        llm = ChatGoogleGenerativeAI(
            model=config["word_model"],
            google_api_key=get_api_key(),
            temperature=config.get("word_temperature", 0.7),
        )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": _build_user_prompt(category, limit)},
        ]

        # First attempt
        response = await ainvoke_with_retry(llm, messages)
        text = message_text(response)

        try:
            words = _validate_response(json.loads(strip_fences(text)), limit)
        except (json.JSONDecodeError, ValueError):
            # Re-prompt once before giving up
            messages.append({"role": "assistant", "content": text})
            messages.append({
                "role": "user",
                "content": (
                    "Your response did not match the required JSON schema. "
                    "Please try again with ONLY the raw JSON array — "
                    "no markdown fences, no commentary."
                ),
            })
            response = await ainvoke_with_retry(llm, messages)
            words = _validate_response(json.loads(strip_fences(message_text(response))), limit)
    except Exception as exc:
        print(f"[KindySpell] Failed to generate words for '{category}': {exc!r}", file=sys.stderr)
        return [dict(item) for item in ERROR_WORDS]

    return words
