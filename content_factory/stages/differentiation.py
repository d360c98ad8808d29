"""Per-domain writing guardrails.

Each domain (and keyword, and stage) gets a stable perspective, narrative
pattern, rhythm and forbidden opener, picked by hashing, so sister sites in a
portfolio never converge on the same voice.
"""

import hashlib

PERSPECTIVE_LENSES = [
    "operator-first: focus on execution constraints and tradeoffs",
    "consumer-outcome-first: optimize for clarity and decision confidence",
    "skeptical-analyst: highlight assumptions and validation steps",
    "pragmatic-builder: emphasize practical implementation details",
    "risk-manager: surface downside, edge cases, and mitigation",
]

NARRATIVE_STYLES = [
    "problem -> constraints -> options -> recommendation",
    "myth -> evidence -> practical takeaway",
    "decision criteria -> scenario walkthrough -> action plan",
    "baseline -> optimization path -> failure mode checks",
]

SECTION_RHYTHMS = [
    "short opener, dense middle, concise action close",
    "evidence-first paragraphs with one concrete takeaway each",
    "alternating concise bullets and explanatory paragraphs",
    "question-driven subheads with direct answers",
]

FORBIDDEN_OPENERS = [
    "avoid generic opener: \"In today's...\"",
    "avoid generic opener: \"When it comes to...\"",
    "avoid generic opener: \"If you're looking for...\"",
]

BUCKET_SHAPING = {
    "build": "growth-oriented and implementation-heavy",
    "redirect": "transition-oriented and concise",
    "park": "signal-gathering and low-maintenance",
    "defensive": "risk-minimizing and policy-conservative",
}

INTENT_ORDER = ["informational", "commercial", "transactional", "navigational"]


def stable_index(seed: str, size: int) -> int:
    """Index from the first four bytes of sha256(seed), big-endian."""
    if size <= 0:
        return 0
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % size


def stable_pick(seed: str, values: list[str]) -> str:
    return values[stable_index(seed, len(values))]


def build_differentiation_instructions(
    domain_id: str,
    domain_name: str,
    stage: str,
    niche: str | None = None,
    bucket: str | None = None,
    keyword: str | None = None,
) -> str:
    """Guardrail block prepended to generation prompts."""
    seed = ":".join(
        [domain_id, domain_name, niche or "general", bucket or "build", keyword or "", stage]
    )
    bucket_shape = BUCKET_SHAPING.get(bucket or "build", BUCKET_SHAPING["build"])

    lines = [
        "DOMAIN DIFFERENTIATION GUARDRAILS:",
        f"- Domain identity: {domain_name}",
        f"- Perspective lens: {stable_pick(f'{seed}:perspective', PERSPECTIVE_LENSES)}",
        f"- Narrative pattern: {stable_pick(f'{seed}:narrative', NARRATIVE_STYLES)}",
        f"- Section rhythm: {stable_pick(f'{seed}:rhythm', SECTION_RHYTHMS)}",
        f"- Bucket posture: {bucket_shape}",
        f"- {stable_pick(f'{seed}:opener', FORBIDDEN_OPENERS)}",
        "- Never reference, promote, or link to other domains in the same portfolio/network.",
        "- Keep recommendations independent and user-first (no forced affiliate framing).",
    ]
    return "\n".join(lines)


def build_intent_coverage_guidance(intent_counts: dict[str, int], target_count: int) -> str:
    """Steer keyword discovery toward the two least-covered search intents."""
    ranked = sorted(INTENT_ORDER, key=lambda intent: intent_counts.get(intent, 0))
    prioritize = ranked[:2]
    current_mix = ", ".join(f"{intent}:{intent_counts.get(intent, 0)}" for intent in INTENT_ORDER)
    return "\n".join(
        [
            f"Current intent mix for this domain: {current_mix}",
            f"Prioritize underrepresented intents in this batch: {', '.join(prioritize)}.",
            f"Target batch size: {target_count}. Do not output only one intent class.",
        ]
    )
