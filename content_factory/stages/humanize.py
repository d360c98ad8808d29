"""Humanize stage: persona rewrite behind the quality gates."""

from loguru import logger

from content_factory.errors import QualityGateError, StageInputError
from content_factory.jobs.revisions import create_revision
from content_factory.models.db import PipelineJob
from content_factory.models.generation import ModelTask
from content_factory.models.jobs import JobType, RevisionChangeType, StageOutcome
from content_factory.quality.report import QualityReport, evaluate_quality
from content_factory.quality.scanner import format_violations_for_prompt, strip_dash_variants
from content_factory.stages.common import StageContext, StageRun
from content_factory.stages.voice import get_or_create_voice_seed, voice_persona_instructions


def corrective_instructions(report: QualityReport, threshold: float) -> str:
    """Instruction block listing what the previous rewrite got wrong."""
    parts = []
    violations = format_violations_for_prompt(report.violations)
    if violations:
        parts.append(violations)
    if not report.burstiness.passed:
        parts.append(
            f"Sentence lengths are too uniform (burstiness {report.burstiness.score:.2f}, "
            f"minimum {threshold:.2f}). Mix very short sentences with long ones."
        )
    return "\n\n".join(parts)


async def process_humanize(ctx: StageContext, job: PipelineJob) -> StageOutcome:
    """
    Rewrite the draft in the domain's voice and enforce the quality gates.

    A failing rewrite gets up to ``quality.corrective_passes`` corrective
    rewrites. If it still fails, a ``quality_violation`` event is stored and
    the job fails so the queue retries it.

    Raises:
        StageInputError: Article has no draft body
        QualityGateError: Gates still fail after the corrective passes
    """
    run = StageRun(ctx, job, "humanize")
    article = run.article()
    if not article.content_markdown:
        raise StageInputError(f"Draft not found for article {article.id}", run.stage)
    domain = run.domain()
    quality = ctx.config.quality

    voice_seed = await get_or_create_voice_seed(ctx, domain.id, domain.name, domain.niche)
    differentiation = run.differentiation(domain, article.target_keyword)

    prompt = ctx.prompts.render(
        "humanize",
        differentiation=differentiation,
        draft=article.content_markdown,
        voice_instructions=voice_persona_instructions(voice_seed),
    )
    result = await run.text(ModelTask.HUMANIZATION, prompt)
    text, _ = strip_dash_variants(result.content)

    if quality.enforce_at_humanize:
        report = evaluate_quality(text, quality)
        passes = 0
        while not report.passed and passes < quality.corrective_passes:
            passes += 1
            logger.warning(
                "Humanized text failed quality gates, running corrective pass",
                article_id=article.id,
                corrective_pass=passes,
                reasons=report.failure_reasons()[:5],
            )
            corrective = ctx.prompts.render(
                "humanize_corrective",
                differentiation=differentiation,
                article=text,
                corrections=corrective_instructions(report, quality.burstiness_threshold),
                voice_instructions=voice_persona_instructions(voice_seed),
            )
            result = await run.text(ModelTask.HUMANIZATION, corrective)
            text, _ = strip_dash_variants(result.content)
            report = evaluate_quality(text, quality)

        if not report.passed:
            reasons = report.failure_reasons()
            ctx.store.add_event(
                event_type="quality_violation",
                severity="warning",
                title="Quality gate failed at humanize",
                message=f"Article {article.id} failed {len(reasons)} quality check(s) after {passes} corrective pass(es)",
                domain_id=domain.id,
                article_id=article.id,
                details={
                    "reasons": reasons,
                    "burstiness": report.burstiness.score,
                    "correctivePasses": passes,
                },
            )
            raise QualityGateError(
                f"Humanized text failed quality gates: {'; '.join(reasons[:5])}",
                run.stage,
                violations=reasons,
            )

    words = run.rewrite_word_count(text, article)
    ctx.store.set_article_body(article.id, text, generation_passes=2)
    create_revision(
        ctx.store,
        article.id,
        title=article.title,
        content_markdown=text,
        meta_description=article.meta_description,
        change_type=RevisionChangeType.AI_REFINED,
        change_summary=f"Humanized ({words} words)",
    )

    logger.info("Humanized text stored", article_id=article.id, words=words, persona=voice_seed.name)
    return run.finish(result={"wordCount": words}, successor=JobType.SEO_OPTIMIZE)
