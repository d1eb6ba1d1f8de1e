import pytest

from voice_assistant.config import Settings
from voice_assistant.core.errors import ConfigError


def test_defaults():
    settings = Settings.from_env({})

    assert settings.chat_model == 'gpt-4o-mini'
    assert settings.language == 'en-US'
    assert settings.tts_voice == 'alloy'
    assert settings.listen_timeout == 5.0


def test_prefixed_overrides_are_validated():
    settings = Settings.from_env({
        'VOICE_ASSISTANT_CHAT_MODEL': 'gpt-4o',
        'VOICE_ASSISTANT_TEMPERATURE': '0.2',
        'VOICE_ASSISTANT_LANGUAGE': ' de-DE ',
        'VOICE_ASSISTANT_MAX_CONTENT_CHARS': '5000',
        'VOICE_ASSISTANT_TTS_VOICE': '',
        'CHAT_MODEL': 'ignored-without-prefix',
    })

    assert settings.chat_model == 'gpt-4o'
    assert settings.temperature == 0.2
    assert settings.language == 'de-DE'
    assert settings.max_content_chars == 5000
    assert settings.tts_voice == 'alloy'


@pytest.mark.parametrize('name, value', [
    ('VOICE_ASSISTANT_TEMPERATURE', '3.5'),
    ('VOICE_ASSISTANT_LISTEN_TIMEOUT', '0'),
    ('VOICE_ASSISTANT_MAX_CONTENT_CHARS', 'lots'),
])
def test_invalid_values_raise_config_error(name, value):
    with pytest.raises(ConfigError):
        Settings.from_env({name: value})
