"""Game controller — owns the SessionState and drives the collaborators.

All work runs on one asyncio event loop. Game logic (taps, win checks,
advancing) is applied synchronously; speech playback is spawned as
background tasks whose failures are only logged.
"""

import asyncio
import random
import sys
from collections.abc import Callable

from kindyspell import session
from kindyspell.config import get_config
from kindyspell.services.audio import play_audio
from kindyspell.services.media import fetch_image, synthesize_speech
from kindyspell.services.words import fetch_word_list
from kindyspell.state import SessionState, WordItem
from kindyspell.utils.validator import validate_category


class SpellingGame:
    """One spelling session: menu, category run, word-by-word play, victory.

    Collaborators default to the Gemini-backed services and can be replaced
    with any async callables of the same shape.
    """

    def __init__(
        self,
        word_source=None,
        image_source=None,
        speech_source=None,
        player=None,
        rng: random.Random | None = None,
        on_change: Callable[[dict], None] | None = None,
    ):
        config = get_config()
        self.word_source = word_source or fetch_word_list
        self.image_source = image_source or fetch_image
        self.speech_source = speech_source or synthesize_speech
        self.player = player or play_audio
        self.rng = rng or random.Random()
        self.on_change = on_change
        self.post_word_delay = config.get("post_word_delay", 4.0)
        self.feedback_timeout = config.get("feedback_timeout", 1.0)

        self.state: SessionState = session.initial_state()
        self._tasks: set[asyncio.Task] = set()
        self._feedback_token = 0

    # --- State plumbing ---

    def snapshot(self) -> dict:
        """Read-only copy of the state for the presentation layer."""
        return session.snapshot(self.state)

    def _apply(self, updates: dict) -> None:
        if not updates:
            return
        self.state = session.apply_updates(self.state, updates)
        for issue in session.check_invariants(self.state):
            print(f"[KindySpell] Warning: {issue}", file=sys.stderr)
        if self.on_change is not None:
            self.on_change(self.snapshot())

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            print(f"[KindySpell] Background task failed: {exc!r}", file=sys.stderr)

    async def wait_idle(self) -> None:
        """Wait until every spawned task (audio, timers, word advances) has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- Collaborator calls, each isolated from the others ---

    async def _fetch_words(self, category: str) -> list[WordItem]:
        try:
            return await self.word_source(category)
        except Exception as exc:
            print(f"[KindySpell] Word source failed for '{category}': {exc!r}", file=sys.stderr)
            return []

    async def _fetch_image(self, word: str) -> str | None:
        try:
            return await self.image_source(word)
        except Exception as exc:
            print(f"[KindySpell] Image source failed for '{word}': {exc!r}", file=sys.stderr)
            return None

    async def _synthesize(self, text: str) -> bytes | None:
        try:
            return await self.speech_source(text)
        except Exception as exc:
            print(f"[KindySpell] Speech source failed: {exc!r}", file=sys.stderr)
            return None

    async def _play(self, payload: bytes | None) -> None:
        if not payload:
            return
        try:
            await self.player(payload)
        except Exception as exc:
            print(f"[KindySpell] Audio play failed: {exc!r}", file=sys.stderr)

    async def _say(self, text: str) -> None:
        await self._play(await self._synthesize(text))

    def _speak(self, text: str) -> asyncio.Task:
        """Fire-and-forget speech; never awaited by game logic."""
        return self._spawn(self._say(text))

    # --- Intents ---

    async def select_category(self, category_id: str) -> None:
        """Start a category run and load its first word.

        Raises ValueError for an empty category id. Ignored outside MENU.
        """
        category = validate_category(category_id)
        updates = session.select_category(self.state, category)
        if not updates:
            print(
                f"[KindySpell] Ignoring category '{category}' in mode {self.state['mode']}.",
                file=sys.stderr,
            )
            return
        self._apply(updates)
        tag = self.state["load_tag"]

        words = await self._fetch_words(category)
        loaded = session.words_loaded(self.state, words, tag)
        if not loaded:
            return  # Reset or re-selected while the list was loading
        self._apply(loaded)
        if self.state["mode"] == "PLAYING":
            await self.load_current_word()

    async def load_current_word(self) -> None:
        """Rebuild the tray for current_index and fetch its picture and prompt.

        The image and the spoken prompt are requested concurrently; either may
        fail without affecting the other. Results are dropped if another load
        or a reset happened while they were in flight.
        """
        updates = session.prepare_word(self.state, self.rng)
        if not updates:
            return
        self._apply(updates)
        tag = self.state["load_tag"]
        word = session.current_word(self.state)["word"]

        image, prompt_audio = await asyncio.gather(
            self._fetch_image(word),
            self._synthesize(session.SPELL_PROMPT.format(word=word)),
        )

        loaded = session.media_loaded(self.state, tag, image)
        if not loaded:
            return
        self._apply(loaded)
        if prompt_audio:
            self._spawn(self._play(prompt_audio))

    def submit_letter(self, tile_id: str) -> str:
        """Handle a tap on a tray tile. Must be called from the event loop.

        Returns "placed", "completed", "wrong" or "ignored". Placement and
        the win check happen before this returns; the letter announcement
        runs in the background.
        """
        tile = session.find_tile(self.state, tile_id)
        updates, outcome = session.submit_letter(self.state, tile_id)
        if outcome == "ignored":
            return outcome
        self._apply(updates)

        if outcome == "wrong":
            self._feedback_token += 1
            self._spawn(self._clear_feedback_later(self._feedback_token))
            return outcome

        self._speak(session.LETTER_PROMPT.format(char=tile["char"]))
        if outcome == "completed":
            self.complete_word()
        return outcome

    async def _clear_feedback_later(self, token: int) -> None:
        await asyncio.sleep(self.feedback_timeout)
        # A newer wrong tap restarts the timer
        if token == self._feedback_token:
            self._apply(session.clear_feedback(self.state))

    def complete_word(self) -> None:
        """Score the word, cheer, and schedule the move to the next word."""
        updates = session.complete_word(self.state)
        if not updates:
            return
        self._apply(updates)
        item = session.current_word(self.state)
        self._speak(session.CONGRATS_PROMPT.format(word=item["word"], sentence=item["sentence"]))
        self._spawn(self._finish_word(self.state["load_tag"]))

    async def _finish_word(self, tag: int) -> None:
        await asyncio.sleep(self.post_word_delay)
        if tag != self.state["load_tag"] or self.state["mode"] != "PLAYING":
            return  # Reset or reloaded during the pause

        if session.route_after_word(self.state) == "advance":
            self._apply(session.advance(self.state))
            await self.load_current_word()
        else:
            self._apply(session.finish(self.state))
            self._speak(session.FINISHED_PROMPT)

    def replay_word(self) -> bool:
        """Say the current word again. Returns False when not applicable."""
        if not session.can_replay(self.state):
            return False
        self._speak(session.current_word(self.state)["word"])
        return True

    def reset(self) -> None:
        """Back to MENU from any mode; in-flight work for the old run is dropped."""
        self._apply(session.reset(self.state))
