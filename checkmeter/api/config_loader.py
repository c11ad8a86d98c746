"""JSON configuration for the checkmeter server.

Settings live in ``config/checkmeter.json`` (see ``config/checkmeter.example.json``).
Every key is optional; missing sections fall back to the dataclass defaults.
Secrets are never stored in the file, only the names of the environment
variables that hold them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Type, TypeVar

from ..ai.enhance import EnhancementSettings
from ..ai.policy import PolicyThresholds

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ALLOWED_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class OpenAISettings:
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str = "https://api.openai.com/v1"
    standard_model: str = "o4-mini"
    detailed_model: str = "o3"
    glow_up_model: str = "gpt-4o"
    timeout: float = 60.0


@dataclass
class GeminiSettings:
    api_key_env: str = "GEMINI_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    standard_model: str = "models/gemini-2.5-flash"
    detailed_model: str = "models/gemini-2.5-pro"
    glow_up_model: str = "models/gemini-2.5-flash"
    timeout: float = 60.0


@dataclass
class ClassifierSettings:
    backend: str = "openai"
    standard_max_tokens: int = 800
    detailed_max_tokens: int = 2000
    openai: OpenAISettings = field(default_factory=OpenAISettings)
    gemini: GeminiSettings = field(default_factory=GeminiSettings)


@dataclass
class QuotaSettings:
    standard_limit: int = 3
    detailed_limit: int = 1
    enforce_on_analysis: bool = False


@dataclass
class UploadSettings:
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_types: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_TYPES))


@dataclass
class PolicySettings:
    unknown_below: int = 50
    boost_to: int = 70
    better_image_below: int = 70
    warn_below: int = 85
    retry_below: int = 89
    suppress_below: int = 30
    dual_pass_enabled: bool = True

    def thresholds(self) -> PolicyThresholds:
        return PolicyThresholds(
            unknown_below=self.unknown_below,
            boost_to=self.boost_to,
            better_image_below=self.better_image_below,
            warn_below=self.warn_below,
            retry_below=self.retry_below,
            suppress_below=self.suppress_below,
        )


@dataclass
class EnhancementConfig:
    contrast_factor: float = 1.2
    max_dimension: int = 3000
    jpeg_quality: int = 92
    fallback_quality: int = 75
    max_bytes: int = 4 * 1024 * 1024

    def settings(self) -> EnhancementSettings:
        return EnhancementSettings(
            contrast_factor=self.contrast_factor,
            max_dimension=self.max_dimension,
            jpeg_quality=self.jpeg_quality,
            fallback_quality=self.fallback_quality,
            max_bytes=self.max_bytes,
        )


@dataclass
class AppConfig:
    server: ServerSettings = field(default_factory=ServerSettings)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    quota: QuotaSettings = field(default_factory=QuotaSettings)
    uploads: UploadSettings = field(default_factory=UploadSettings)
    policy: PolicySettings = field(default_factory=PolicySettings)
    enhancement: EnhancementConfig = field(default_factory=EnhancementConfig)


def load_config(path: str | Path | None) -> AppConfig:
    """Load configuration from ``path``; ``None`` returns the defaults.

    Raises:
        FileNotFoundError: if ``path`` is given but does not exist.
        ValueError: if the file is not a JSON object.
    """
    if path is None:
        return AppConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root in {config_path} must be an object")
    config = _build(AppConfig, data)
    logger.info("Loaded configuration from %s", config_path)
    return config


def _build(cls: Type[T], data: dict[str, Any]) -> T:
    defaults = cls()
    kwargs: dict[str, Any] = {}
    for item in fields(cls):  # type: ignore[arg-type]
        if item.name not in data:
            continue
        raw = data[item.name]
        current = getattr(defaults, item.name)
        if is_dataclass(current):
            if not isinstance(raw, dict):
                logger.warning("Ignoring non-object value for section %s", item.name)
                continue
            kwargs[item.name] = _build(type(current), raw)
        else:
            kwargs[item.name] = _coerce(item.name, raw, current)
    return cls(**kwargs)


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            return raw.strip().lower() in ("1", "true", "yes")
        return bool(raw)
    if isinstance(default, (int, float)):
        try:
            return type(default)(raw)
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s: %r; using %r", name, raw, default)
            return default
    if isinstance(default, list):
        if isinstance(raw, list):
            return [str(item) for item in raw]
        logger.warning("Expected a list for %s; using defaults", name)
        return default
    if raw is None:
        return default
    return str(raw)


__all__ = [
    "AppConfig",
    "ClassifierSettings",
    "EnhancementConfig",
    "GeminiSettings",
    "OpenAISettings",
    "PolicySettings",
    "QuotaSettings",
    "ServerSettings",
    "UploadSettings",
    "load_config",
]
