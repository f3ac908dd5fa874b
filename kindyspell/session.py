"""Spelling-session transitions — pure functions over SessionState.

Each transition takes the current state and returns a dict of updated
fields (empty when the transition does not apply). The game controller
merges the result with apply_updates(). Nothing here awaits, sleeps or
talks to the network, so every rule can be tested synchronously.
"""

import copy
import random
import uuid
from urllib.parse import quote

from kindyspell.state import LetterTile, SessionState, WordItem
from kindyspell.utils.scramble import scramble

FEEDBACK_MESSAGE = "Try again!"
EMPTY_CATEGORY_NOTICE = "Oops! No words for {category} right now. Pick another topic!"
PLACEHOLDER_IMAGE = "https://picsum.photos/seed/{word}/400/400"

SPELL_PROMPT = "Spell the word, {word}"
LETTER_PROMPT = "The letter {char}"
CONGRATS_PROMPT = "Good job! {word}! {sentence}"
FINISHED_PROMPT = "You finished the whole set! Amazing!"


def initial_state() -> SessionState:
    """Return a fresh MENU-mode state."""
    return {
        "category": None,
        "words": [],
        "current_index": 0,
        "score": 0,
        "mode": "MENU",
        "tiles": [],
        "slots": [],
        "word_complete": False,
        "loading": False,
        "image": None,
        "feedback": "",
        "notice": "",
        "load_tag": 0,
    }


def apply_updates(state: SessionState, updates: dict) -> SessionState:
    """Merge a transition result into the state."""
    return {**state, **updates}


def snapshot(state: SessionState) -> dict:
    """Return a deep copy of the state for read-only consumers."""
    return copy.deepcopy(dict(state))


def current_word(state: SessionState) -> WordItem | None:
    """Return the word at current_index, or None outside a playable run."""
    words = state["words"]
    if 0 <= state["current_index"] < len(words):
        return words[state["current_index"]]
    return None


def placeholder_image(word: str) -> str:
    """Deterministic stand-in image for a word whose illustration failed."""
    return PLACEHOLDER_IMAGE.format(word=quote(word.lower()))


# --- Category run ---


def select_category(state: SessionState, category: str) -> dict:
    """MENU -> LOADING_CATEGORY. Clears score and index; ignored outside MENU."""
    if state["mode"] != "MENU":
        return {}
    return {
        **initial_state(),
        "mode": "LOADING_CATEGORY",
        "category": category,
        "load_tag": state["load_tag"] + 1,
    }


def words_loaded(state: SessionState, words: list[WordItem], tag: int) -> dict:
    """LOADING_CATEGORY -> PLAYING with the fetched list.

    A result whose tag no longer matches (the user reset or picked another
    category meanwhile) is dropped. An empty list sends the session back to
    MENU with a notice instead of entering an unplayable PLAYING mode.
    """
    if state["mode"] != "LOADING_CATEGORY" or tag != state["load_tag"]:
        return {}
    if not words:
        return {
            **initial_state(),
            "notice": EMPTY_CATEGORY_NOTICE.format(category=state["category"]),
            "load_tag": state["load_tag"],
        }
    return {"words": list(words), "mode": "PLAYING", "current_index": 0}


# --- Word lifecycle ---


def build_tray(word: str, rng: random.Random | None = None) -> tuple[list[LetterTile], list[None]]:
    """Build one tile per character plus all-empty slots.

    Tiles are returned in scramble order. Repeated letters get distinct ids.
    """
    letters = word.upper()
    batch = uuid.uuid4().hex[:8]
    tiles: list[LetterTile] = [
        {"char": char, "id": f"{char}-{i}-{batch}", "placed": False}
        for i, char in enumerate(letters)
    ]
    return scramble(tiles, rng), [None] * len(letters)


def prepare_word(state: SessionState, rng: random.Random | None = None) -> dict:
    """Discard the current tray and build a fresh one for current_index.

    Marks a media load as in flight and bumps load_tag, so a second call for
    the same index simply rebuilds and orphans the first call's media.
    """
    item = current_word(state)
    if state["mode"] != "PLAYING" or item is None:
        return {}
    tiles, slots = build_tray(item["word"], rng)
    return {
        "tiles": tiles,
        "slots": slots,
        "word_complete": False,
        "loading": True,
        "image": None,
        "feedback": "",
        "load_tag": state["load_tag"] + 1,
    }


def media_loaded(state: SessionState, tag: int, image: str | None) -> dict:
    """Finish a word load. Results for a stale tag are dropped."""
    item = current_word(state)
    if tag != state["load_tag"] or state["mode"] != "PLAYING" or item is None:
        return {}
    return {"loading": False, "image": image or placeholder_image(item["word"])}


# --- Taps ---


def next_slot_index(state: SessionState) -> int | None:
    """Index of the first empty slot, or None when the word is fully placed."""
    for i, slot in enumerate(state["slots"]):
        if slot is None:
            return i
    return None


def find_tile(state: SessionState, tile_id: str) -> LetterTile | None:
    """Return the unplaced tile with this id, if any."""
    for tile in state["tiles"]:
        if tile["id"] == tile_id and not tile["placed"]:
            return tile
    return None


def _route_tap(state: SessionState, tile_id: str) -> str:
    """Classify a tap: "ignored", "wrong", "placed" or "completed".

    Matching is by character: any unplaced tile showing the letter the next
    slot expects is accepted, so words with repeated letters never depend on
    which copy is tapped first.
    """
    item = current_word(state)
    if state["mode"] != "PLAYING" or item is None:
        return "ignored"
    if state["word_complete"] or state["loading"]:
        return "ignored"

    k = next_slot_index(state)
    if k is None:
        return "ignored"
    tile = find_tile(state, tile_id)
    if tile is None:
        return "ignored"

    if tile["char"] != item["word"].upper()[k]:
        return "wrong"
    return "completed" if k == len(state["slots"]) - 1 else "placed"


def submit_letter(state: SessionState, tile_id: str) -> tuple[dict, str]:
    """Validate a tap and return (updates, outcome).

    A wrong tap only raises the feedback message; slots, tiles and score
    are left untouched.
    """
    outcome = _route_tap(state, tile_id)
    if outcome == "ignored":
        return {}, outcome
    if outcome == "wrong":
        return {"feedback": FEEDBACK_MESSAGE}, outcome

    k = next_slot_index(state)
    tile = find_tile(state, tile_id)
    placed = {**tile, "placed": True}

    slots = list(state["slots"])
    slots[k] = placed
    tiles = [placed if t["id"] == tile_id else t for t in state["tiles"]]
    return {"slots": slots, "tiles": tiles, "feedback": ""}, outcome


def clear_feedback(state: SessionState) -> dict:
    return {"feedback": ""} if state["feedback"] else {}


# --- Word completion ---


def complete_word(state: SessionState) -> dict:
    """Mark the current word complete and award its point (once)."""
    if state["mode"] != "PLAYING" or state["word_complete"]:
        return {}
    return {"word_complete": True, "score": state["score"] + 1}


def route_after_word(state: SessionState) -> str:
    """Decide what follows a completed word: "advance" or "victory"."""
    if state["current_index"] < len(state["words"]) - 1:
        return "advance"
    return "victory"


def advance(state: SessionState) -> dict:
    return {"current_index": state["current_index"] + 1}


def finish(state: SessionState) -> dict:
    return {"mode": "VICTORY"}


def can_replay(state: SessionState) -> bool:
    """Whether the "hear word" intent applies right now."""
    return (
        state["mode"] == "PLAYING"
        and current_word(state) is not None
        and not state["loading"]
        and not state["word_complete"]
    )


def reset(state: SessionState) -> dict:
    """Any mode -> MENU with every field cleared.

    load_tag keeps counting up so in-flight work from the old run is dropped.
    """
    return {**initial_state(), "load_tag": state["load_tag"] + 1}


# --- Consistency ---


def check_invariants(state: SessionState) -> list[str]:
    """Check the session invariants.

    Returns a list of issue strings. Empty list = consistent.
    """
    issues = []
    words = state["words"]
    index = state["current_index"]

    if state["mode"] == "PLAYING" and not 0 <= index < len(words):
        issues.append(f"PLAYING with current_index {index} outside {len(words)} words.")
    if state["mode"] == "VICTORY":
        if index != len(words) - 1:
            issues.append(f"VICTORY with current_index {index}, expected {len(words) - 1}.")
        if not state["word_complete"]:
            issues.append("VICTORY before the final word was completed.")
    if words and index > len(words) - 1:
        issues.append(f"current_index {index} past the last word.")

    completed = index + (1 if state["word_complete"] else 0)
    if state["score"] > completed:
        issues.append(f"score {state['score']} exceeds {completed} completed word(s).")

    # Filled slots must form a prefix
    seen_empty = False
    for i, slot in enumerate(state["slots"]):
        if slot is None:
            seen_empty = True
        elif seen_empty:
            issues.append(f"Slot {i} is filled after an empty slot.")
            break

    return issues
