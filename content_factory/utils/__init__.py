"""Utility functions and helpers."""

from content_factory.utils.clock import utcnow
from content_factory.utils.config_loader import apply_env_overrides, load_pipeline_config, load_yaml_config
from content_factory.utils.hash import prompt_hash, sha256_hex
from content_factory.utils.logging import get_logger, job_logging_context, setup_logging
from content_factory.utils.prompt_loader import PromptLoader, RenderedPrompt
from content_factory.utils.slug import generate_slug, safe_slug, slug_variants
from content_factory.utils.text import strip_code_fences, word_count

__all__ = [
    "utcnow",
    "setup_logging",
    "get_logger",
    "job_logging_context",
    "generate_slug",
    "safe_slug",
    "slug_variants",
    "load_yaml_config",
    "load_pipeline_config",
    "apply_env_overrides",
    "prompt_hash",
    "sha256_hex",
    "PromptLoader",
    "RenderedPrompt",
    "word_count",
    "strip_code_fences",
]
