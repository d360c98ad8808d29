"""Combined quality report used by the humanize gate and the scan command."""

from pydantic import BaseModel, Field

from content_factory.models.config import QualityConfig
from content_factory.quality.burstiness import BurstinessResult, measure_burstiness
from content_factory.quality.fingerprint import content_fingerprint, content_signature
from content_factory.quality.scanner import BannedPatternScanner, Violation


class QualityReport(BaseModel):
    violations: list[Violation] = Field(default_factory=list)
    burstiness: BurstinessResult
    fingerprint: str
    signature: list[str] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations and self.burstiness.passed

    def failure_reasons(self) -> list[str]:
        reasons = [f'{v.category.value}: "{v.pattern}" (line {v.line})' for v in self.violations]
        if not self.burstiness.passed:
            reasons.append(f"low burstiness: {self.burstiness.score:.2f}")
        return reasons


def evaluate_quality(markdown: str, config: QualityConfig | None = None) -> QualityReport:
    """Run banned-pattern, burstiness and fingerprint checks on one body."""
    config = config or QualityConfig()
    scanner = BannedPatternScanner(config.banned_words, config.banned_transitions)
    signature = content_signature(markdown)
    return QualityReport(
        violations=scanner.scan(markdown),
        burstiness=measure_burstiness(
            markdown,
            threshold=config.burstiness_threshold,
            min_sentences=config.burstiness_min_sentences,
        ),
        fingerprint=content_fingerprint(markdown, signature),
        signature=signature,
    )
