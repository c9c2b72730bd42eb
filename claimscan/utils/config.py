"""Configuration management for the claim document pipeline.

Loads and validates YAML configuration with sensible defaults for the
OCR backend, entity extraction, batch pipeline, and recommendation
backend. API credentials can be supplied through environment variables
so they stay out of the YAML file.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Environment variable -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "OCRSPACE_API_KEY": ("ocr", "api_key"),
    "HF_TOKEN": ("recommendation", "api_token"),
    "HF_MODEL": ("recommendation", "model"),
}


class OCRConfig(BaseModel):
    """Configuration for the hosted OCR backend."""

    api_url: str = "https://api.ocr.space/parse/image"
    api_key: str = "helloworld"
    language: str = "eng"
    engine: int = 2
    scale: bool = True
    timeout_seconds: float = Field(default=120.0, gt=0)
    upload_chunk_size: int = Field(default=64 * 1024, gt=0)


class ExtractionConfig(BaseModel):
    """Configuration for label-based entity extraction."""

    confidence: float = Field(default=0.9, ge=0.0, le=1.0)


class PipelineConfig(BaseModel):
    """Configuration for the batch document pipeline."""

    progress_reset_delay_seconds: float = Field(default=0.4, ge=0.0)


class RecommendationConfig(BaseModel):
    """Configuration for the scheme recommendation backend."""

    base_url: str = "https://api-inference.huggingface.co/models"
    model: str = "mistralai/Mistral-7B-Instruct-v0.2"
    api_token: str = ""
    max_new_tokens: int = 500
    temperature: float = 0.3
    timeout_seconds: float = Field(default=60.0, gt=0)


class ApiConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    recommendation: RecommendationConfig = Field(
        default_factory=RecommendationConfig
    )
    api: ApiConfig = Field(default_factory=ApiConfig)
    log_level: str = "INFO"


def _apply_env_overrides(raw: dict) -> dict:
    """Merge credential environment variables into raw config data."""
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            logger.debug("Using %s from environment", env_name)
            raw.setdefault(section, {})[key] = value
    return raw


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_overrides(raw))
