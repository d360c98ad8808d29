"""Quality gates: banned patterns, burstiness, fingerprints and duplication."""

from content_factory.quality.burstiness import BurstinessResult, measure_burstiness
from content_factory.quality.duplicates import DuplicateMatch, check_cross_domain_duplication
from content_factory.quality.fingerprint import (
    content_fingerprint,
    content_signature,
    jaccard_similarity,
)
from content_factory.quality.report import QualityReport, evaluate_quality
from content_factory.quality.scanner import (
    BannedPatternScanner,
    Violation,
    ViolationCategory,
    format_violations_for_prompt,
    strip_dash_variants,
)

__all__ = [
    "BannedPatternScanner",
    "BurstinessResult",
    "DuplicateMatch",
    "QualityReport",
    "Violation",
    "ViolationCategory",
    "check_cross_domain_duplication",
    "content_fingerprint",
    "content_signature",
    "evaluate_quality",
    "format_violations_for_prompt",
    "jaccard_similarity",
    "measure_burstiness",
    "strip_dash_variants",
]
