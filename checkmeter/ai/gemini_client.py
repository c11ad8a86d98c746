from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

import requests

from .openai_client import parse_json_object
from .types import VisionClient


@dataclass
class GeminiVisionClient(VisionClient):
    """Delegate image analysis to the Google Gemini multimodal API."""

    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 60.0

    def complete_json(
        self,
        *,
        system_prompt: str,
        image_bytes: bytes,
        model: str,
        mime_type: str = "image/jpeg",
        user_text: str | None = None,
        max_tokens: int = 800,
    ) -> dict[str, Any]:
        if not self.api_key:
            raise RuntimeError("Gemini API key is required to analyze images")

        payload = self._build_payload(
            system_prompt=system_prompt,
            image_bytes=image_bytes,
            mime_type=mime_type,
            user_text=user_text,
            max_tokens=max_tokens,
        )
        url = f"{self.base_url.rstrip('/')}/{model}:generateContent"
        response_data = self._send_request(url, payload)
        message = self._extract_message_content(response_data)
        return parse_json_object(message, source="Gemini")

    def _send_request(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise RuntimeError(f"Failed to reach Gemini API: {exc}") from exc

    def _build_payload(
        self,
        *,
        system_prompt: str,
        image_bytes: bytes,
        mime_type: str,
        user_text: str | None,
        max_tokens: int,
    ) -> dict[str, Any]:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        parts: list[dict[str, Any]] = []
        if user_text:
            parts.append({"text": user_text})
        parts.append({"inline_data": {"mime_type": mime_type, "data": encoded}})
        return {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": 0.0,
                "maxOutputTokens": max_tokens,
                "responseMimeType": "application/json",
            },
        }

    def _extract_message_content(self, data: dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise RuntimeError("Unexpected response format from Gemini API") from exc


__all__ = ["GeminiVisionClient"]
