"""Shared helpers for configuring Gemini vision requests."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache

from google import genai
from google.genai import types


DEFAULT_VISION_MODEL = "gemini-2.0-flash"
DEFAULT_API_VERSION = "v1beta"
DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a fetal ultrasound analysis assistant. "
    "Answer only with the requested JSON object."
)
DEFAULT_TEMPERATURE = 0.1
MODEL_ENV_VAR = "DOPPLER_VISION_MODEL"
CONFIG_FILE_ENCODING = "utf-8"


class GeminiConfigError(RuntimeError):
    """Raised when the Gemini client cannot be configured."""


def _resolve_api_key(explicit_key: str | None = None) -> str:
    """Return the Gemini API key or raise :class:`GeminiConfigError`."""

    if explicit_key:
        return explicit_key

    env_key = os.getenv("GEMINI_API_KEY")
    if env_key:
        return env_key

    raise GeminiConfigError(
        "Gemini API key is not configured. "
        "Set the GEMINI_API_KEY environment variable or pass api_key explicitly."
    )


def resolve_model(explicit_model: str | None = None) -> str:
    """Return the vision model name, honouring the environment override."""

    if explicit_model:
        return explicit_model
    return os.getenv(MODEL_ENV_VAR) or DEFAULT_VISION_MODEL


@lru_cache
def get_gemini_client(api_key: str | None = None) -> genai.Client:
    """Create (and memoize) a configured Gemini client."""

    resolved_key = _resolve_api_key(api_key)
    return genai.Client(http_options={"api_version": DEFAULT_API_VERSION}, api_key=resolved_key)


def build_generate_config(
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION,
    temperature: float = DEFAULT_TEMPERATURE,
) -> types.GenerateContentConfig:
    """Create a :class:`GenerateContentConfig` requesting a JSON response."""

    return types.GenerateContentConfig(
        system_instruction=system_instruction or None,
        response_mime_type="application/json",
        temperature=temperature,
    )


@dataclass(frozen=True)
class GeminiSettings:
    """Configuration for the Gemini vision analyzer."""

    model: str
    api_key: str
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    api_version: str = DEFAULT_API_VERSION

    def build_client(self) -> genai.Client:
        """Create a Gemini client using the configured API key."""
        if not self.api_key:
            raise GeminiConfigError("Gemini settings do not define an apiKey.")
        return genai.Client(
            http_options={"api_version": self.api_version},
            api_key=self.api_key,
        )

    def build_generate_config(self) -> types.GenerateContentConfig:
        return build_generate_config(self.system_instruction)

    @classmethod
    def from_file(cls, path: str) -> "GeminiSettings":
        """Build settings from a JSON configuration file.

        Args:
            path (str): Path to a JSON file with ``model``, ``apiKey`` and an
                optional ``systemInstruction``. A missing ``apiKey`` falls back
                to the ``GEMINI_API_KEY`` environment variable.

        Returns:
            GeminiSettings: Parsed settings instance built from the file content.
        """
        try:
            with open(path, "r", encoding=CONFIG_FILE_ENCODING) as config_file:
                data = json.load(config_file)
        except FileNotFoundError as error:
            raise GeminiConfigError(f"Gemini settings file not found: {path}") from error
        except json.JSONDecodeError as error:
            raise GeminiConfigError(f"Gemini settings file is not valid JSON: {path}") from error

        model = resolve_model(str(data.get("model", "")).strip() or None)
        api_key = _resolve_api_key(str(data.get("apiKey", "")).strip() or None)
        instruction = str(
            data.get("systemInstruction", DEFAULT_SYSTEM_INSTRUCTION)
        ).strip()
        if not instruction:
            instruction = DEFAULT_SYSTEM_INSTRUCTION

        return cls(model=model, api_key=api_key, system_instruction=instruction)
