"""
HTTP client for the external text-analysis model.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse, urlunparse

import requests

SUPPORTED_MODES = ("ollama", "ollama_chat", "openai", "gemini")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def ensure_ollama_endpoint(endpoint: str, default_path: str) -> str:
    """
    Normalise a user-supplied Ollama endpoint.

    Bare hosts (http://localhost:11434) and `/api` roots get the required
    suffix appended; any other custom path is kept as-is.
    """
    if not endpoint:
        return endpoint

    target_suffix = "/" + default_path.strip("/")
    parsed = urlparse(endpoint.strip())
    path = (parsed.path or "").rstrip("/")

    if not path:
        new_path = target_suffix
    elif path.endswith(target_suffix) or path != "/api":
        new_path = path
    else:
        new_path = target_suffix

    return urlunparse(parsed._replace(path=new_path or "/")).rstrip("/")


def _preview(response: requests.Response, limit: int) -> str:
    body = (response.text or "").strip()
    preview = body[:limit]
    if len(body) > len(preview):
        preview += "…"
    return preview


def _post_json(
    *,
    endpoint: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    timeout: int,
    model: str,
    params: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """POST and decode JSON, wrapping transport and HTTP failures in RuntimeError."""
    try:
        response = requests.post(endpoint, json=payload, headers=headers, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise RuntimeError(f"Model request failed for '{model}' at {endpoint}: {exc}") from exc

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        raise RuntimeError(
            f"Model HTTP {response.status_code} for '{model}' at {endpoint}: {_preview(response, 1000)}"
        ) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(
            f"Model returned non-JSON payload for '{model}' at {endpoint}: {_preview(response, 500)}"
        ) from exc


@dataclass(slots=True)
class LLMResponse:
    """Raw model reply plus the settings it was produced with."""

    text: str
    model: str
    prompt: str
    temperature: float
    num_ctx: int
    num_predict: Optional[int]


class LLMClient:
    """Thin wrapper around Ollama, OpenAI-compatible and Gemini HTTP APIs."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        auth_token: Optional[str] = None,
        api_mode: Optional[str] = None,
    ):
        mode = api_mode or os.getenv("MCA_MODEL_API_MODE", "ollama")
        self.api_mode = mode.lower()
        if self.api_mode not in SUPPORTED_MODES:
            raise ValueError(
                f"Unsupported model API mode '{self.api_mode}'. Expected one of: {', '.join(SUPPORTED_MODES)}."
            )

        if self.api_mode == "openai":
            self.endpoint = endpoint or os.getenv("OPENAI_ENDPOINT", "http://localhost:8000/v1/chat/completions")
            self.auth_token = auth_token or os.getenv("OPENAI_API_KEY")
        elif self.api_mode == "gemini":
            self.endpoint = endpoint or os.getenv("GEMINI_ENDPOINT", GEMINI_BASE_URL)
            self.auth_token = auth_token or os.getenv("GEMINI_API_KEY")
        elif self.api_mode == "ollama_chat":
            raw_endpoint = endpoint or os.getenv("OLLAMA_CHAT_ENDPOINT", "http://localhost:11434/api/chat")
            self.endpoint = ensure_ollama_endpoint(raw_endpoint, "api/chat")
            self.auth_token = auth_token or os.getenv("OLLAMA_BEARER")
        else:
            raw_endpoint = endpoint or os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434/api/generate")
            self.endpoint = ensure_ollama_endpoint(raw_endpoint, "api/generate")
            self.auth_token = auth_token or os.getenv("OLLAMA_BEARER")

    def is_configured(self) -> bool:
        """Gemini and OpenAI need a key; local Ollama only needs an endpoint."""
        if self.api_mode in {"gemini", "openai"}:
            return bool(self.endpoint and self.auth_token)
        return bool(self.endpoint)

    def call(
        self,
        model: str,
        prompt: str,
        *,
        temperature: float = 0.2,
        num_ctx: int = 8192,
        num_predict: Optional[int] = None,
        timeout: int = 60,
    ) -> LLMResponse:
        if self.api_mode == "openai":
            text = self._call_openai(model, prompt, temperature, num_predict, timeout)
        elif self.api_mode == "gemini":
            text = self._call_gemini(model, prompt, temperature, num_predict, timeout)
        elif self.api_mode == "ollama_chat":
            text = self._call_ollama(model, prompt, temperature, num_ctx, num_predict, timeout, chat=True)
        else:
            text = self._call_ollama(model, prompt, temperature, num_ctx, num_predict, timeout, chat=False)
        return LLMResponse(
            text=text,
            model=model,
            prompt=prompt,
            temperature=temperature,
            num_ctx=num_ctx,
            num_predict=num_predict,
        )

    def _bearer_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _call_ollama(
        self,
        model: str,
        prompt: str,
        temperature: float,
        num_ctx: int,
        num_predict: Optional[int],
        timeout: int,
        *,
        chat: bool,
    ) -> str:
        options: Dict[str, Any] = {"temperature": temperature, "num_ctx": num_ctx}
        if num_predict is not None:
            options["num_predict"] = int(num_predict)

        body: Dict[str, Any] = {"model": model, "stream": False, "options": options, "format": "json"}
        if chat:
            body["messages"] = [{"role": "user", "content": prompt}]
        else:
            body["prompt"] = prompt

        payload = _post_json(
            endpoint=self.endpoint, payload=body, headers=self._bearer_headers(), timeout=timeout, model=model
        )
        if chat:
            return (payload.get("message") or {}).get("content", "")
        return payload.get("response", "")

    def _call_openai(
        self,
        model: str,
        prompt: str,
        temperature: float,
        num_predict: Optional[int],
        timeout: int,
    ) -> str:
        body: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if num_predict is not None:
            body["max_tokens"] = int(num_predict)

        data = _post_json(
            endpoint=self.endpoint, payload=body, headers=self._bearer_headers(), timeout=timeout, model=model
        )
        choices = data.get("choices") or []
        if not choices:
            return ""
        choice = choices[0]
        message = choice.get("message") or {}
        return message.get("content", "") or choice.get("text", "")

    def _call_gemini(
        self,
        model: str,
        prompt: str,
        temperature: float,
        num_predict: Optional[int],
        timeout: int,
    ) -> str:
        model_path = model if model.startswith("models/") else f"models/{model}"
        url = f"{self.endpoint.rstrip('/')}/{model_path}:generateContent"
        generation: Dict[str, Any] = {"temperature": temperature, "responseMimeType": "application/json"}
        if num_predict is not None:
            generation["maxOutputTokens"] = int(num_predict)
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation,
        }

        data = _post_json(
            endpoint=url,
            payload=body,
            headers={"Content-Type": "application/json"},
            params={"key": self.auth_token or ""},
            timeout=timeout,
            model=model,
        )
        texts = []
        for candidate in data.get("candidates", []):
            for part in candidate.get("content", {}).get("parts", []):
                if "text" in part:
                    texts.append(part["text"])
        return "\n".join(texts)


__all__ = ["LLMClient", "LLMResponse", "ensure_ollama_endpoint", "SUPPORTED_MODES"]
