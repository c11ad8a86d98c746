from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from .config_loader import AppConfig, load_config
from .server import create_app
from ..ai import (
    GeminiVisionClient,
    GlowUpAdvisor,
    MockMeterClassifier,
    OpenAIVisionClient,
    VisionMeterClassifier,
)
from ..ai.meter import TierModel

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser with minimal CLI flags.

    Configuration is loaded from config/checkmeter.json; CLI flags are only
    for quick overrides.
    """
    parser = argparse.ArgumentParser(
        description="Run the Check Your Meter API server",
        epilog="Configuration is loaded from config/checkmeter.json. "
               "CLI arguments override config file settings."
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/checkmeter.json",
        help="Path to JSON configuration file (default: config/checkmeter.json)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Override server host (default: from config file)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override server port (default: from config file)"
    )
    return parser


def build_backends(
    cfg: AppConfig,
) -> tuple[VisionMeterClassifier | MockMeterClassifier, GlowUpAdvisor | None]:
    """Create the meter classifier and glow-up advisor for the configured backend.

    Without credentials the server still starts, answering with canned mock
    replies and leaving selfie styling disabled.
    """
    settings = cfg.classifier
    backend = settings.backend.strip().lower()
    if backend == "mock":
        logger.warning("Mock classifier backend configured; responses are canned")
        return MockMeterClassifier(), None

    if backend == "openai":
        provider = settings.openai
        key = os.environ.get(provider.api_key_env)
        client = (
            OpenAIVisionClient(api_key=key, base_url=provider.base_url, timeout=provider.timeout)
            if key
            else None
        )
    elif backend == "gemini":
        provider = settings.gemini
        key = os.environ.get(provider.api_key_env)
        client = (
            GeminiVisionClient(api_key=key, base_url=provider.base_url, timeout=provider.timeout)
            if key
            else None
        )
    else:
        logger.error("Unsupported classifier backend '%s'", settings.backend)
        sys.exit(1)

    if client is None:
        logger.warning(
            "Environment variable %s is not set; returning mock responses for testing",
            provider.api_key_env,
        )
        return MockMeterClassifier(), None

    classifier = VisionMeterClassifier(
        client=client,
        standard=TierModel(model=provider.standard_model, max_tokens=settings.standard_max_tokens),
        detailed=TierModel(model=provider.detailed_model, max_tokens=settings.detailed_max_tokens),
    )
    advisor = GlowUpAdvisor(client=client, model=provider.glow_up_model)
    return classifier, advisor


def main() -> None:
    load_dotenv()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s"
        )
    parser = build_parser()
    args = parser.parse_args()

    try:
        cfg = load_config(args.config if Path(args.config).exists() else None)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        sys.exit(1)
    if not Path(args.config).exists():
        logger.info(
            "Configuration file %s not found; using defaults. "
            "Copy config/checkmeter.example.json to get started.",
            args.config,
        )

    if args.host:
        cfg.server.host = args.host
    if args.port:
        cfg.server.port = args.port

    logger.info("Server configuration: %s:%d", cfg.server.host, cfg.server.port)
    logger.info("Classifier backend: %s", cfg.classifier.backend)

    classifier, advisor = build_backends(cfg)
    app = create_app(classifier=classifier, config=cfg, glow_up_advisor=advisor)

    try:
        uvicorn.run(app, host=cfg.server.host, port=cfg.server.port, log_level="info")
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received during shutdown")


if __name__ == "__main__":
    main()
