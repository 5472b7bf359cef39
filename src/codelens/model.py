"""Ollama model client - optional model-backed analysis and refactoring.

The deterministic engine never needs this module. It is used only when the
CLI is asked for ``--use-model``, and every failure surfaces as ModelError
so the caller can fall back to the heuristic result.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

DEFAULT_MODEL = "qwen2.5-coder:7b"
OLLAMA_BASE_URL = "http://localhost:11434"
GENERATE_TIMEOUT = 300.0  # local models on CPU are slow
PROBE_TIMEOUT = 5.0

logger = logging.getLogger(__name__)


class ModelError(Exception):
    """Error communicating with the model."""


@dataclass(frozen=True)
class ProviderConfig:
    """Where and how to reach the model."""

    model: str = DEFAULT_MODEL
    base_url: str = OLLAMA_BASE_URL
    timeout: float = GENERATE_TIMEOUT
    temperature: float = 0.2

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Read CODELENS_MODEL and OLLAMA_HOST, keeping defaults for unset vars."""
        return cls(
            model=os.environ.get("CODELENS_MODEL") or DEFAULT_MODEL,
            base_url=os.environ.get("OLLAMA_HOST") or OLLAMA_BASE_URL,
        )


class OllamaClient:
    """Client for Ollama REST API."""

    def __init__(self, config: ProviderConfig | None = None):
        self.config = config or ProviderConfig()
        self.model = self.config.model
        self.base_url = self.config.base_url.rstrip("/")
        self._client = httpx.Client(timeout=self.config.timeout)

    def is_running(self) -> bool:
        """Check if Ollama server is reachable."""
        try:
            resp = self._client.get(f"{self.base_url}/api/tags", timeout=PROBE_TIMEOUT)
            return resp.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    def is_model_available(self) -> bool:
        """Check if the configured model is downloaded."""
        try:
            resp = self._client.get(f"{self.base_url}/api/tags", timeout=PROBE_TIMEOUT * 2)
            if resp.status_code != 200:
                return False
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            return False
        models = [m.get("name", "") for m in data.get("models", [])]
        # Exact match, bare name, or implicit :latest tag
        return any(
            self.model == m
            or self.model == m.split(":")[0]
            or f"{self.model}:latest" == m
            for m in models
        )

    def generate(self, prompt: str, system: str = "", max_tokens: int = 4096) -> str:
        """Generate text from prompt. Returns raw text response."""
        return self._post(self._payload(prompt, system, max_tokens))

    def generate_json(self, prompt: str, system: str = "") -> dict:
        """Generate and parse a JSON object response."""
        payload = self._payload(prompt, system, 4096)
        payload["format"] = "json"
        text = self._post(payload)
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            raise ModelError(f"Model returned invalid JSON: {text[:200]}")
        if not isinstance(data, dict):
            raise ModelError(f"Model returned {type(data).__name__}, expected a JSON object")
        return data

    def _payload(self, prompt: str, system: str, max_tokens: int) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": max_tokens,
            },
        }
        if system:
            payload["system"] = system
        return payload

    def _post(self, payload: dict[str, Any]) -> str:
        logger.debug("POST %s/api/generate model=%s", self.base_url, self.model)
        try:
            resp = self._client.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.config.timeout,
            )
            if resp.status_code != 200:
                raise ModelError(
                    f"Ollama returned {resp.status_code}: {resp.text[:200]}"
                )
            data = resp.json()
        except httpx.TimeoutException:
            raise ModelError(f"Model generation timed out after {self.config.timeout:g}s")
        except httpx.ConnectError:
            raise ModelError(
                f"Cannot connect to Ollama at {self.base_url}. Is it running? Try: ollama serve"
            )
        except httpx.HTTPError as e:
            raise ModelError(f"Request to Ollama failed: {e}")
        except ValueError:
            raise ModelError("Ollama returned a non-JSON response")
        return data.get("response", "")
