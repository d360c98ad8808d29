"""Per-domain writer persona ("voice seed").

A domain gets one persona, generated on first use and stored on the domain so
every later article keeps the same voice.
"""

from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError

from content_factory.errors import StructuredOutputError
from content_factory.generation.governance import record_generation_call
from content_factory.models.content import VoiceSeed
from content_factory.models.generation import GenerationOptions, ModelTask

if TYPE_CHECKING:
    from content_factory.stages.common import StageContext

FALLBACK_VOICE_SEED = VoiceSeed(
    name="Sam",
    background="Spent a decade working hands-on in the field before writing about it.",
    quirk="Opens sections with a short, concrete observation.",
    tone_dial=6,
    tangents="Brief asides about mistakes seen on real jobs.",
    pet_phrase="in practice",
    formatting="Short paragraphs with the occasional table.",
)


def voice_persona_instructions(voice_seed: VoiceSeed | None) -> str:
    """Persona block included in draft and humanize prompts."""
    if voice_seed is None:
        return ""
    return "\n".join(
        [
            "VOICE PERSONA:",
            f'You are writing as "{voice_seed.name}".',
            f"- Background: {voice_seed.background}",
            f"- Writing Quirk: {voice_seed.quirk}",
            f"- Tone Dial: {voice_seed.tone_dial}/10",
            f"- Tangent Style: {voice_seed.tangents}",
            f'- Pet Phrase: "{voice_seed.pet_phrase}"',
            f"- Formatting: {voice_seed.formatting}",
        ]
    )


async def get_or_create_voice_seed(
    ctx: "StageContext",
    domain_id: str,
    domain_name: str,
    niche: str | None,
) -> VoiceSeed:
    """
    Return the stored persona for a domain, generating one when absent.

    A failed generation falls back to a neutral persona that is not stored,
    so the next article tries again.
    """
    domain = ctx.store.get_domain(domain_id)
    if domain is not None and domain.voice_seed:
        try:
            return VoiceSeed.model_validate(domain.voice_seed)
        except ValidationError as e:
            logger.warning("Stored voice seed is invalid, regenerating", domain=domain_name, error=str(e))

    prompt = ctx.prompts.render("voice_seed", topic=niche or "general", domain_name=domain_name)
    try:
        result = await ctx.client.generate_structured(
            ModelTask.VOICE_SEED_GENERATION,
            prompt.user_prompt,
            GenerationOptions(system_prompt=prompt.system_prompt),
            schema=VoiceSeed,
        )
    except StructuredOutputError as e:
        if e.usage is not None:
            record_generation_call(ctx.store, "voice_seed", prompt, e.usage, domain_id=domain_id)
        logger.warning("Voice seed output did not parse, using fallback persona", domain=domain_name, error=str(e))
        return FALLBACK_VOICE_SEED
    except Exception as e:
        logger.warning("Voice seed generation failed, using fallback persona", domain=domain_name, error=str(e))
        return FALLBACK_VOICE_SEED

    record_generation_call(ctx.store, "voice_seed", prompt, result, domain_id=domain_id)
    voice_seed: VoiceSeed = result.data
    ctx.store.set_voice_seed(domain_id, voice_seed.model_dump(by_alias=True))
    logger.info("Voice seed created", domain=domain_name, persona=voice_seed.name)
    return voice_seed
