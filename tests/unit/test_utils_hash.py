"""Unit tests for hashing utilities."""

from content_factory.utils.hash import (
    normalize_prompt_body,
    prompt_hash,
    sha256_hex,
)


class TestSha256Hex:
    """Test sha256_hex function."""

    def test_known_digest(self) -> None:
        """Test digest of a known string."""
        assert sha256_hex("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_length(self) -> None:
        """Test digest length."""
        assert len(sha256_hex("best hiking boots")) == 64


class TestPromptHash:
    """Test prompt normalization and hashing."""

    def test_line_endings_normalized(self) -> None:
        """Test CRLF and LF prompts hash the same."""
        assert normalize_prompt_body("a\r\nb") == "a\nb"
        assert prompt_hash(normalize_prompt_body("a\r\nb")) == prompt_hash("a\nb")
