"""Prompt loader for generation calls.

Loads prompt templates from YAML files in the prompts/ directory. Each file
holds a ``system_prompt`` and a ``user_prompt``; the user prompt is formatted
with ``str.format`` keyword arguments.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"


class RenderedPrompt(BaseModel):
    """A prompt ready to send."""

    name: str
    system_prompt: str
    user_prompt: str

    @property
    def body(self) -> str:
        """System and user text joined, as recorded for audit."""
        if not self.system_prompt:
            return self.user_prompt
        return f"{self.system_prompt}\n\n{self.user_prompt}"


class PromptLoader:
    """Load and format prompts from YAML files."""

    def __init__(self, prompts_dir: Path | str = DEFAULT_PROMPTS_DIR):
        """Initialize prompt loader.

        Args:
            prompts_dir: Directory containing prompt YAML files
        """
        self.prompts_dir = Path(prompts_dir)
        if not self.prompts_dir.exists():
            raise FileNotFoundError(f"Prompts directory not found: {self.prompts_dir}")
        self._load = lru_cache(maxsize=64)(self._read)

    def _read(self, name: str) -> tuple[str, str]:
        prompt_file = self.prompts_dir / f"{name}.yaml"

        if not prompt_file.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

        try:
            with open(prompt_file, encoding="utf-8") as f:
                prompt_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse prompt YAML: {e}") from e

        if not isinstance(prompt_data, dict):
            raise ValueError(f"Invalid prompt file format: {prompt_file}")

        if "system_prompt" not in prompt_data or "user_prompt" not in prompt_data:
            raise ValueError(
                f"Prompt file must contain 'system_prompt' and 'user_prompt': {prompt_file}"
            )

        logger.debug(f"Loaded prompt from {prompt_file}")
        return (prompt_data["system_prompt"] or "").strip(), prompt_data["user_prompt"].strip()

    def load_prompt(self, name: str) -> dict[str, str]:
        """Load the raw template pair for a prompt.

        Args:
            name: Prompt name (file stem, e.g. "outline")

        Returns:
            Dictionary with 'system_prompt' and 'user_prompt' keys

        Raises:
            FileNotFoundError: If prompt file doesn't exist
            ValueError: If prompt file is invalid
        """
        system_prompt, user_prompt = self._load(name)
        return {"system_prompt": system_prompt, "user_prompt": user_prompt}

    def render(self, name: str, **kwargs: Any) -> RenderedPrompt:
        """Load a prompt and format its user template with variables.

        Raises:
            ValueError: If a template variable is missing
        """
        system_prompt, user_template = self._load(name)
        try:
            user_prompt = user_template.format(**kwargs)
        except KeyError as e:
            raise ValueError(f"Missing required prompt variable: {e}") from e

        logger.debug(f"Formatted prompt {name} ({len(user_prompt)} chars)")
        return RenderedPrompt(name=name, system_prompt=system_prompt, user_prompt=user_prompt)
