from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any

import requests

from .types import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Send an image plus instructions to the OpenAI chat completions API and parse the JSON reply."""

    api_key: str
    base_url: str = "https://api.openai.com/v1"
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
            raise RuntimeError("OpenAI API key is required to analyze images")

        payload = self._build_payload(
            system_prompt=system_prompt,
            image_bytes=image_bytes,
            model=model,
            mime_type=mime_type,
            user_text=user_text,
            max_tokens=max_tokens,
        )
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        response_data = self._send_request(url, payload)
        message = self._extract_message_content(response_data)
        return parse_json_object(message, source="OpenAI")

    def _send_request(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = requests.post(
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise RuntimeError(f"Failed to reach OpenAI API: {exc}") from exc

    def _build_payload(
        self,
        *,
        system_prompt: str,
        image_bytes: bytes,
        model: str,
        mime_type: str,
        user_text: str | None,
        max_tokens: int,
    ) -> dict[str, Any]:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        content: list[dict[str, Any]] = []
        if user_text:
            content.append({"type": "text", "text": user_text})
        content.append(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
            }
        )
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": content},
            ],
            "max_completion_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

    def _extract_message_content(self, data: dict[str, Any]) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RuntimeError("Unexpected response format from OpenAI API") from exc
        if not isinstance(content, str) or not content.strip():
            raise RuntimeError("No content in the OpenAI response")
        return content


def parse_json_object(message: str, *, source: str) -> dict[str, Any]:
    text = message.strip()
    if not text.startswith("{"):
        raise RuntimeError(f"{source} API response was not a JSON object")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{source} API response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f"{source} API response was not a JSON object")
    return payload


__all__ = ["OpenAIVisionClient", "parse_json_object"]
