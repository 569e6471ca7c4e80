from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv


class Provider(StrEnum):
    OPENAI = "openai"
    GEMINI = "gemini"
    OPENROUTER = "openrouter"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.OPENROUTER: "OPENROUTER_API_KEY",
}

# OpenAI-compatible chat-completions base URLs
_BASE_URLS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai/",
    Provider.OPENROUTER: "https://openrouter.ai/api/v1",
}


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise RuntimeError."""
    load_dotenv()
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise RuntimeError(f"No config for {provider!s}") from None

    try:
        return os.environ[env_var]
    except KeyError as exc:
        raise RuntimeError(f"{env_var} missing") from exc


def get_base_url(provider: Provider) -> str:
    try:
        return _BASE_URLS[provider]
    except KeyError:
        raise RuntimeError(f"No config for {provider!s}") from None


__all__ = ["Provider", "get_api_key", "get_base_url"]
