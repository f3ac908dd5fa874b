"""Session state — single source of truth owned by the game controller."""

from typing import Literal, TypedDict

Mode = Literal["MENU", "LOADING_CATEGORY", "PLAYING", "VICTORY"]


class WordItem(TypedDict):
    word: str  # Uppercase, alphabetic.
    sentence: str  # Short sentence using the word.


class LetterTile(TypedDict):
    char: str  # Single uppercase letter.
    id: str  # Unique per tile, even for repeated letters.
    placed: bool


class SessionState(TypedDict):
    category: str | None
    words: list[WordItem]
    current_index: int
    score: int
    mode: Mode
    tiles: list[LetterTile]  # Scramble order shown in the tray.
    slots: list[LetterTile | None]  # Filled left-to-right only.
    word_complete: bool
    loading: bool  # Media load in flight for the current word.
    image: str | None
    feedback: str  # Transient wrong-answer message, "" when clear.
    notice: str  # Menu-level message, e.g. no words found.
    load_tag: int  # Bumped on every load/reset; stale results are dropped.
