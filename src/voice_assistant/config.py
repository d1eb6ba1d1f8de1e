"""
Runtime configuration.

Values come from the environment (optionally a `.env` file) under the
`VOICE_ASSISTANT_` prefix and are validated by pydantic. `OPENAI_API_KEY` is
read directly by the OpenAI / langchain clients.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from voice_assistant.core.errors import ConfigError

log = logging.getLogger("voice_assistant.config")

ENV_PREFIX = "VOICE_ASSISTANT_"


class Settings(BaseModel):
    """Complete runtime configuration for the assistant."""
    chat_model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    vision_model: str = Field(default="gpt-4o-mini", description="Model used for visual questions")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    tts_model: str = Field(default="tts-1", description="Speech synthesis model")
    tts_voice: str = Field(default="alloy", description="Speech synthesis voice")
    language: str = Field(default="en-US", description="Fixed recognition locale tag")
    listen_timeout: float = Field(default=5.0, gt=0, le=60, description="Seconds to wait for speech to start")
    phrase_time_limit: float = Field(default=15.0, gt=0, le=120, description="Max seconds of one utterance")
    fetch_timeout: float = Field(default=15.0, gt=0, le=120, description="Web fetch timeout (seconds)")
    max_content_chars: int = Field(default=20000, ge=500, description="Page text sent to the summarizer")
    log_level: str = Field(default="INFO", description="Root log level")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from `environ` (defaults to os.environ after loading .env)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()

        try:
            settings = cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

        log.debug("event=settings_loaded overrides=%s", sorted(values))
        return settings
