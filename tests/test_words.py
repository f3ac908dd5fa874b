"""Tests for kindyspell.services.words: fetch_word_list and response validation."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from kindyspell.services.words import (
    ERROR_WORDS,
    FALLBACK_WORDS,
    _validate_response,
    fetch_word_list,
)


def _mock_llm_response(content):
    """Create a mock LLM response object."""
    response = MagicMock()
    response.content = content
    return response


def _words_json(*words):
    return json.dumps([{"word": w, "sentence": f"I see a {w.lower()}."} for w in words])


# --- _validate_response ---


class TestValidateResponse:
    def test_uppercases_words(self):
        data = [{"word": "cat", "sentence": "Meow."}]
        assert _validate_response(data, 5) == [{"word": "CAT", "sentence": "Meow."}]

    def test_strips_whitespace(self):
        data = [{"word": "  dog ", "sentence": "  Woof.  "}]
        assert _validate_response(data, 5) == [{"word": "DOG", "sentence": "Woof."}]

    def test_drops_non_alphabetic_words(self, capsys):
        data = [
            {"word": "ICE CREAM", "sentence": "Cold."},
            {"word": "T-REX", "sentence": "Roar."},
            {"word": "BEE", "sentence": "Buzz."},
        ]
        assert [w["word"] for w in _validate_response(data, 5)] == ["BEE"]
        assert "dropping non-alphabetic" in capsys.readouterr().err

    def test_drops_items_without_word(self, capsys):
        data = [{"sentence": "No word here."}, "CAT", {"word": "PIG", "sentence": "Oink."}]
        assert [w["word"] for w in _validate_response(data, 5)] == ["PIG"]
        assert "without a 'word'" in capsys.readouterr().err

    def test_drops_items_without_sentence(self, capsys):
        data = [{"word": "HEN"}, {"word": "OWL", "sentence": None}, {"word": "EMU", "sentence": "Tall."}]
        assert _validate_response(data, 5) == [{"word": "EMU", "sentence": "Tall."}]
        assert "without a 'sentence'" in capsys.readouterr().err

    def test_drops_non_string_words(self):
        data = [{"word": None, "sentence": "x"}, {"word": 42, "sentence": "y"}, {"word": "ANT", "sentence": "z"}]
        assert [w["word"] for w in _validate_response(data, 5)] == ["ANT"]

    def test_no_usable_items_raises(self):
        with pytest.raises(ValueError):
            _validate_response([{"word": None, "sentence": "x"}, {"word": "ICE CREAM", "sentence": "Cold."}], 5)

    def test_drops_duplicates(self):
        data = [{"word": "CAT", "sentence": "a"}, {"word": "cat", "sentence": "b"}]
        assert _validate_response(data, 5) == [{"word": "CAT", "sentence": "a"}]

    def test_caps_list_length(self):
        data = json.loads(_words_json("ANT", "BEE", "CAT", "DOG", "EEL", "FOX"))
        assert len(_validate_response(data, 5)) == 5

    def test_empty_list_is_valid(self):
        assert _validate_response([], 5) == []

    def test_non_list_raises(self):
        with pytest.raises(ValueError):
            _validate_response({"word": "CAT"}, 5)


# --- fetch_word_list ---


class TestFetchWordList:
    @patch("kindyspell.services.words.get_api_key", return_value="")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_no_api_key_returns_fallback(self, MockLLM, _key, mock_config):
        result = asyncio.run(fetch_word_list("animals"))
        assert result == FALLBACK_WORDS
        assert result is not FALLBACK_WORDS
        MockLLM.assert_not_called()

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_returns_validated_words(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response(_words_json("cat", "dog")))
        MockLLM.return_value = mock_instance

        result = asyncio.run(fetch_word_list("animals"))

        assert [w["word"] for w in result] == ["CAT", "DOG"]
        assert MockLLM.call_args.kwargs["model"] == "gemini-test"
        messages = mock_instance.ainvoke.call_args.args[0]
        assert '"animals"' in messages[1]["content"]

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_strips_fences(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        fenced = f"```json\n{_words_json('SUN')}\n```"
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response(fenced))
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("colors"))[0]["word"] == "SUN"

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_content_blocks_are_joined(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        blocks = [{"type": "text", "text": _words_json("RED")}]
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response(blocks))
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("colors"))[0]["word"] == "RED"

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_retry_on_bad_first_response(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(side_effect=[
            _mock_llm_response("not json at all"),
            _mock_llm_response(_words_json("EAR", "ARM")),
        ])
        MockLLM.return_value = mock_instance

        result = asyncio.run(fetch_word_list("body"))

        assert mock_instance.ainvoke.call_count == 2
        assert [w["word"] for w in result] == ["EAR", "ARM"]
        reprompt = mock_instance.ainvoke.call_args.args[0]
        assert reprompt[-2] == {"role": "assistant", "content": "not json at all"}

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_two_bad_responses_fall_back(self, MockLLM, _key, mock_config, capsys):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response('{"word": "CAT"}'))
        MockLLM.return_value = mock_instance

        result = asyncio.run(fetch_word_list("animals"))

        assert result == ERROR_WORDS
        assert mock_instance.ainvoke.call_count == 2
        assert "Failed to generate words" in capsys.readouterr().err

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_call_failure_falls_back(self, MockLLM, _key, mock_config):
        response_401 = httpx.Response(401, request=httpx.Request("POST", "https://api.example.com"))
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(side_effect=httpx.HTTPStatusError(
            "unauthorized", request=response_401.request, response=response_401,
        ))
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("animals")) == ERROR_WORDS
        assert mock_instance.ainvoke.call_count == 1  # no retry for 401

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_transient_error_is_retried(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(side_effect=[
            httpx.ConnectError("connection refused"),
            _mock_llm_response(_words_json("FIG")),
        ])
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("fruits"))[0]["word"] == "FIG"
        assert mock_instance.ainvoke.call_count == 2

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_empty_list_passes_through(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response("[]"))
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("animals")) == []

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_all_items_unusable_reprompts_then_falls_back(self, MockLLM, _key, mock_config):
        unusable = json.dumps([{"sentence": "no word"}, {"word": "ICE CREAM", "sentence": "Cold."}])
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(return_value=_mock_llm_response(unusable))
        MockLLM.return_value = mock_instance

        assert asyncio.run(fetch_word_list("fruits")) == ERROR_WORDS
        assert mock_instance.ainvoke.call_count == 2

    @patch("kindyspell.services.words.get_api_key", return_value="test-key")
    @patch("kindyspell.services.words.ChatGoogleGenerativeAI")
    def test_unusable_first_response_recovers_on_reprompt(self, MockLLM, _key, mock_config):
        mock_instance = MagicMock()
        mock_instance.ainvoke = AsyncMock(side_effect=[
            _mock_llm_response(json.dumps([{"word": None, "sentence": "x"}])),
            _mock_llm_response(_words_json("PEAR")),
        ])
        MockLLM.return_value = mock_instance

        assert [w["word"] for w in asyncio.run(fetch_word_list("fruits"))] == ["PEAR"]
