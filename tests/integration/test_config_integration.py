"""Integration tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from content_factory.models.config import PipelineConfig
from content_factory.utils.config_loader import load_pipeline_config

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "pipeline.yaml"

OVERRIDE_VARS = (
    "DATABASE_URL",
    "GENERATION_PROVIDER",
    "ENABLE_INTERNAL_LINKING",
    "AI_REVIEW_FALLBACK_ENABLED",
    "RESEARCH_CACHE_TTL_HOURS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell from leaking overrides into these tests."""
    for name in OVERRIDE_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_pipeline_yaml(temp_config_dir: Path) -> Path:
    """Create sample pipeline.yaml file."""
    pipeline_config = {
        "pipeline": {
            "name": "content-factory-test",
            "version": "2.0.0",
            "execution_mode": "development",
        },
        "database": {"url": "sqlite:///tmp/factory.db"},
        "generation": {
            "provider": "gemini",
            "temperature": 0.4,
            "model_overrides": {"seoOptimize": "vendor/seo-large"},
            "retry": {"max_attempts": 4, "base_delay_seconds": 0.5},
            "circuit_breaker": {"failure_threshold": 2},
        },
        "research_cache": {"ttl_hours": 24, "top_n": 3},
        "quality": {"banned_words": ["delve"], "corrective_passes": 2},
        "stages": {"ai_review_enabled": True, "draft_min_words": 300},
        "worker": {"batch_size": 2, "job_timeout_minutes": 15},
        "logging": {
            "level": "DEBUG",
            "serialize": False,
            "colorize": False,
            "file_path": "logs/test.log",
        },
        "error_handling": {"stop_on_critical": False, "max_consecutive_failures": 3},
    }

    pipeline_path = temp_config_dir / "pipeline.yaml"
    pipeline_path.write_text(yaml.dump(pipeline_config))
    return pipeline_path


class TestConfigIntegration:
    """Integration tests for configuration loading."""

    def test_load_pipeline_config(self, sample_pipeline_yaml: Path) -> None:
        """Test loading and validating pipeline configuration."""
        config = load_pipeline_config(sample_pipeline_yaml)

        assert isinstance(config, PipelineConfig)
        assert config.pipeline.name == "content-factory-test"
        assert config.pipeline.execution_mode == "development"

        assert config.database.url == "sqlite:///tmp/factory.db"

        assert config.generation.provider == "gemini"
        assert config.generation.temperature == 0.4
        assert config.generation.model_overrides == {"seoOptimize": "vendor/seo-large"}
        assert config.generation.retry.max_attempts == 4
        assert config.generation.circuit_breaker.failure_threshold == 2
        # Untouched nested values keep their defaults
        assert config.generation.circuit_breaker.success_threshold == 2

        assert config.research_cache.ttl_hours == 24
        assert config.quality.banned_words == ["delve"]
        assert config.stages.ai_review_enabled is True
        assert config.worker.batch_size == 2
        assert config.logging.level == "DEBUG"
        assert config.error_handling.max_consecutive_failures == 3

    def test_repository_config_loads(self) -> None:
        """The shipped config/pipeline.yaml validates."""
        config = load_pipeline_config(REPO_CONFIG)

        assert config.generation.provider == "openrouter"
        assert config.worker.job_timeout_minutes == 10
        assert "delve" in config.quality.banned_words

    def test_empty_file_uses_defaults(self, temp_config_dir: Path) -> None:
        """An empty YAML document yields the default configuration."""
        path = temp_config_dir / "pipeline.yaml"
        path.write_text("")

        config = load_pipeline_config(path)

        assert config == PipelineConfig()

    def test_missing_file(self, temp_config_dir: Path) -> None:
        """Test error handling for missing config file."""
        with pytest.raises(FileNotFoundError):
            load_pipeline_config(temp_config_dir / "nonexistent.yaml")

    def test_invalid_yaml(self, temp_config_dir: Path) -> None:
        """Test error handling for malformed YAML."""
        path = temp_config_dir / "pipeline.yaml"
        path.write_text("worker: [batch_size: 2\n")

        with pytest.raises(yaml.YAMLError):
            load_pipeline_config(path)

    def test_invalid_values(self, temp_config_dir: Path) -> None:
        """Test validation of out-of-range values."""
        path = temp_config_dir / "pipeline.yaml"
        path.write_text(yaml.dump({"worker": {"batch_size": 0}}))

        with pytest.raises(ValidationError):
            load_pipeline_config(path)


class TestEnvironmentOverrides:
    """Environment variables take precedence over the YAML file."""

    def test_overrides_applied(self, sample_pipeline_yaml: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite:///override.db")
        monkeypatch.setenv("GENERATION_PROVIDER", "openrouter")
        monkeypatch.setenv("ENABLE_INTERNAL_LINKING", "true")
        monkeypatch.setenv("AI_REVIEW_FALLBACK_ENABLED", "0")
        monkeypatch.setenv("RESEARCH_CACHE_TTL_HOURS", "12")

        config = load_pipeline_config(sample_pipeline_yaml)

        assert config.database.url == "sqlite:///override.db"
        assert config.generation.provider == "openrouter"
        assert config.stages.internal_linking_enabled is True
        assert config.stages.ai_review_enabled is False
        assert config.research_cache.ttl_hours == 12

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("GENERATION_PROVIDER", "anthropic"),
            ("RESEARCH_CACHE_TTL_HOURS", "soon"),
            ("RESEARCH_CACHE_TTL_HOURS", "-5"),
            ("AI_REVIEW_FALLBACK_ENABLED", "  "),
        ],
    )
    def test_invalid_overrides_ignored(
        self, sample_pipeline_yaml: Path, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        monkeypatch.setenv(name, value)

        config = load_pipeline_config(sample_pipeline_yaml)

        assert config.generation.provider == "gemini"
        assert config.research_cache.ttl_hours == 24
        assert config.stages.ai_review_enabled is True
