"""Shared fixtures for the KindySpell test suite."""

import pytest
from unittest.mock import patch

from kindyspell.session import initial_state


@pytest.fixture
def base_state():
    """Fresh MENU-mode SessionState."""
    return initial_state()


@pytest.fixture
def animal_words():
    """A three-word list as the Word Source would return it."""
    return [
        {"word": "CAT", "sentence": "The cat says meow."},
        {"word": "DOG", "sentence": "The dog runs fast."},
        {"word": "COW", "sentence": "The cow says moo."},
    ]


@pytest.fixture
def mock_config():
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "word_model": "gemini-test",
        "image_model": "gemini-test-image",
        "speech_model": "gemini-test-tts",
        "speech_voice": "Puck",
        "word_temperature": 0,
        "words_per_category": 5,
        "post_word_delay": 0.01,
        "feedback_timeout": 0.01,
        "llm_max_retries": 3,
        "retry_wait_min": 0,
        "retry_wait_max": 0,
        "audio_sample_rate": 24000,
        "speech_cache_size": 256,
        "categories": [
            {"id": "animals", "label": "Animals", "icon": "🦁"},
            {"id": "fruits", "label": "Fruits", "icon": "🍎"},
        ],
    }
    with patch("kindyspell.config._config", test_config):
        yield test_config
