"""Hashing helpers for prompts, queries and content."""

import hashlib


def sha256_hex(text: str) -> str:
    """SHA256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_prompt_body(prompt: str) -> str:
    """Normalize line endings so the same prompt always hashes the same."""
    return prompt.replace("\r\n", "\n")


def prompt_hash(prompt_body: str) -> str:
    """Hash of a normalized prompt body, stored for replay and audit."""
    return sha256_hex(prompt_body)
