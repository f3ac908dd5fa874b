"""Tests for the terminal front end in kindyspell.main."""

import asyncio
import random
from unittest.mock import AsyncMock, patch

import pytest

from kindyspell.game import SpellingGame
from kindyspell.main import _pick_tile, _render_board, run


@pytest.fixture
def snapshot():
    tiles = [
        {"char": "T", "id": "T-2-x", "placed": False},
        {"char": "C", "id": "C-0-x", "placed": True},
        {"char": "A", "id": "A-1-x", "placed": False},
    ]
    return {
        "mode": "PLAYING",
        "words": [{"word": "CAT", "sentence": "Meow."}, {"word": "DOG", "sentence": "Woof."}],
        "current_index": 0,
        "score": 0,
        "tiles": tiles,
        "slots": [tiles[1], None, None],
        "image": "https://picsum.photos/seed/cat/400/400",
    }


class TestRenderBoard:
    def test_shows_slots_and_tray(self, snapshot):
        board = _render_board(snapshot)
        assert "C _ _" in board
        assert "1:T" in board
        assert "3:A" in board
        assert "2:C" not in board  # placed tiles leave the tray
        assert "Word 1/2" in board


class TestPickTile:
    def test_by_letter(self, snapshot):
        assert _pick_tile(snapshot, "a") == "A-1-x"

    def test_by_number(self, snapshot):
        assert _pick_tile(snapshot, "1") == "T-2-x"

    def test_placed_tile_number_rejected(self, snapshot):
        assert _pick_tile(snapshot, "2") is None

    def test_letter_not_in_tray(self, snapshot):
        assert _pick_tile(snapshot, "z") is None

    def test_number_out_of_range(self, snapshot):
        assert _pick_tile(snapshot, "9") is None


def _offline_game():
    """SpellingGame with in-memory collaborators and a fixed one-word list."""

    async def words(category):
        return [{"word": "CAT", "sentence": "Meow."}]

    async def image(word):
        return None

    async def speech(text):
        return None

    async def player(payload):
        return True

    return SpellingGame(
        word_source=words,
        image_source=image,
        speech_source=speech,
        player=player,
        rng=random.Random(3),
    )


class TestRun:
    def test_spells_to_victory(self, mock_config, capsys):
        with patch("kindyspell.main.SpellingGame", _offline_game), \
                patch("builtins.input", side_effect=["c", "a", "t"]):
            score = asyncio.run(run("animals"))
        assert score == 1
        assert "You did it! Score: 1 Stars!" in capsys.readouterr().out

    def test_q_goes_back_to_category_menu(self, mock_config):
        choose = AsyncMock(return_value="fruits")
        with patch("kindyspell.main.SpellingGame", _offline_game), \
                patch("kindyspell.main._choose_category", choose), \
                patch("builtins.input", side_effect=["q", "c", "a", "t"]):
            score = asyncio.run(run("animals"))
        choose.assert_awaited_once()
        assert score == 1
