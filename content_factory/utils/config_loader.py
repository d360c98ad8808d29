"""Configuration loading utilities."""

import os
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from content_factory.utils.logging import get_logger

if TYPE_CHECKING:
    from content_factory.models.config import PipelineConfig

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_TRUTHY = {"1", "true", "yes", "on"}


def load_yaml_config[T: BaseModel](file_path: Path | str, model_class: type[T]) -> T:
    """
    Load and validate YAML configuration file.

    Args:
        file_path: Path to YAML configuration file
        model_class: Pydantic model class to validate against

    Returns:
        Validated configuration instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(file_path)

    if not path.exists():
        logger.error("Configuration file not found", path=str(path))
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with path.open("r") as f:
            raw_config = yaml.safe_load(f) or {}

        config = model_class.model_validate(raw_config)
        logger.info("Configuration loaded", path=str(path), model=model_class.__name__)
        return config

    except yaml.YAMLError as e:
        logger.error("Invalid YAML syntax", path=str(path), error=str(e))
        raise

    except ValidationError as e:
        logger.error("Configuration validation failed", path=str(path), error=str(e))
        raise


def _env_flag(name: str) -> bool | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUTHY


def apply_env_overrides(config: "PipelineConfig") -> "PipelineConfig":
    """
    Overlay environment variables on a loaded configuration.

    Recognized: DATABASE_URL, ENABLE_INTERNAL_LINKING, AI_REVIEW_FALLBACK_ENABLED,
    RESEARCH_CACHE_TTL_HOURS and GENERATION_PROVIDER.

    Args:
        config: Configuration loaded from YAML

    Returns:
        The same configuration object, updated in place
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        config.database.url = database_url

    provider = os.getenv("GENERATION_PROVIDER")
    if provider in ("openrouter", "gemini"):
        config.generation.provider = provider

    internal_linking = _env_flag("ENABLE_INTERNAL_LINKING")
    if internal_linking is not None:
        config.stages.internal_linking_enabled = internal_linking

    ai_review = _env_flag("AI_REVIEW_FALLBACK_ENABLED")
    if ai_review is not None:
        config.stages.ai_review_enabled = ai_review

    ttl_hours = os.getenv("RESEARCH_CACHE_TTL_HOURS")
    if ttl_hours:
        try:
            parsed = int(ttl_hours)
        except ValueError:
            logger.warning("Ignoring invalid RESEARCH_CACHE_TTL_HOURS", value=ttl_hours)
        else:
            if parsed > 0:
                config.research_cache.ttl_hours = parsed

    return config


def load_pipeline_config(file_path: Path | str = "config/pipeline.yaml") -> "PipelineConfig":
    """
    Load pipeline configuration and apply environment overrides.

    Args:
        file_path: Path to pipeline.yaml file

    Returns:
        PipelineConfig instance
    """
    from content_factory.models.config import PipelineConfig

    return apply_env_overrides(load_yaml_config(file_path, PipelineConfig))
