"""
Sex-field disambiguation ensemble.

Checkbox-style sex fields are layout sensitive, so a single prompt framing
fails in correlated ways. When the main extraction leaves ``sex`` empty,
several independently worded stages are run per model and the first
definitive answer wins:

(a) reference-assisted free form (only when reference images are configured)
(b) free form
(c) label selection (A/B), translated afterwards
(d) enum-constrained schema
(e) geometry (left box vs right box)

Truncation and other errors advance to the next stage; an unavailable model
or provider advances to the next model. No answer anywhere is "" and not an
error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from docverify.clients.gemini_client import (
    ExtractionProvider,
    GenerationRequest,
    ImagePart,
)
from docverify.core.config import SEX_STAGE_MAX_OUTPUT_TOKENS
from docverify.core.exceptions import ExternalServiceError, ModelUnavailable
from docverify.models.dto import normalize_sex
from docverify.resilience import (
    Classification,
    FallbackRunner,
    ScopeExhaustion,
    StrategiesExhausted,
    Strategy,
)

logger = logging.getLogger(__name__)

SEX_VALUES = ("Male", "Female", "")

FREE_FORM_PROMPT = (
    "Look at the SEX field of this Philippine identity document. "
    "Exactly one option is marked (checked, shaded, circled or written). "
    'Return JSON {"sex": "Male"} or {"sex": "Female"}. '
    'If you cannot tell, return {"sex": ""}.'
)

REFERENCE_PROMPT = (
    "The first image is the document. The next images are reference examples: "
    "{references}. Compare how the SEX field is marked on the document with the "
    "references. "
    'Return JSON {{"sex": "Male"}}, {{"sex": "Female"}} or {{"sex": ""}} if unsure.'
)

LABEL_PROMPT = (
    "On this document the SEX field has two options. Option A is MALE, option B "
    "is FEMALE. Which option is marked? "
    'Return JSON {"choice": "A"}, {"choice": "B"}, or {"choice": ""} if neither is marked.'
)

ENUM_PROMPT = "Which sex is marked on this identity document? Answer with the enum value only."

ENUM_SCHEMA = {
    "type": "OBJECT",
    "properties": {"sex": {"type": "STRING", "enum": list(SEX_VALUES)}},
    "required": ["sex"],
}

GEOMETRY_PROMPT = (
    "Find the SEX row of this form. It has two boxes side by side: the LEFT box "
    "is Male and the RIGHT box is Female. Which box contains a mark? "
    'Return JSON {"box": "left"}, {"box": "right"}, or {"box": ""} if neither.'
)

_LABELS = {"a": "Male", "b": "Female"}
_BOXES = {"left": "Male", "right": "Female"}


@dataclass(frozen=True)
class ReferenceImage:
    label: str
    image: ImagePart


def _classify(error: BaseException) -> Classification:
    if isinstance(error, ModelUnavailable):
        return Classification.RETRY_NEXT_SCOPE
    if isinstance(error, ExternalServiceError) and error.error_type == "unavailable":
        return Classification.RETRY_NEXT_SCOPE
    return Classification.RETRY_SAME_SCOPE


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


class SexDisambiguator:
    def __init__(self, provider: ExtractionProvider, models: Sequence[str]):
        self.provider = provider
        self.models = tuple(models)

    async def resolve(
        self,
        primary_image: ImagePart,
        api_key: str,
        auxiliary_crop: Optional[ImagePart] = None,
        reference_images: Sequence[ReferenceImage] = (),
    ) -> str:
        """
        Return "Male", "Female" or "" for the document's sex field.

        The crop is preferred over the full image when supplied.
        """
        target = auxiliary_crop or primary_image

        async def ask(
            model: str,
            prompt: str,
            images: Sequence[ImagePart],
            schema: Optional[dict] = None,
        ) -> dict:
            return await self.provider.generate_json(
                GenerationRequest(
                    model=model,
                    prompt=prompt,
                    images=tuple(images),
                    response_schema=schema,
                    max_output_tokens=SEX_STAGE_MAX_OUTPUT_TOKENS,
                ),
                api_key,
            )

        async def reference_assisted(model: str) -> str:
            prompt = REFERENCE_PROMPT.format(
                references=", ".join(
                    f"image {i + 2} shows {ref.label}"
                    for i, ref in enumerate(reference_images)
                )
            )
            images = [target, *(ref.image for ref in reference_images)]
            return normalize_sex(_text(await ask(model, prompt, images), "sex"))

        async def free_form(model: str) -> str:
            return normalize_sex(_text(await ask(model, FREE_FORM_PROMPT, [target]), "sex"))

        async def label_selection(model: str) -> str:
            choice = _text(await ask(model, LABEL_PROMPT, [target]), "choice")
            return _LABELS.get(choice.lower(), "")

        async def enum_constrained(model: str) -> str:
            payload = await ask(model, ENUM_PROMPT, [target], ENUM_SCHEMA)
            return normalize_sex(_text(payload, "sex"))

        async def geometry(model: str) -> str:
            box = _text(await ask(model, GEOMETRY_PROMPT, [target]), "box")
            return _BOXES.get(box.lower(), "")

        stages: list[Strategy[str]] = []
        if reference_images:
            stages.append(Strategy("reference_assisted", reference_assisted))
        stages.extend(
            [
                Strategy("free_form", free_form),
                Strategy("label_selection", label_selection),
                Strategy("enum_constrained", enum_constrained),
                Strategy("geometry", geometry),
            ]
        )

        runner = FallbackRunner(
            scopes=self.models,
            strategies=stages,
            classify=_classify,
            accept=lambda value: value in ("Male", "Female"),
            on_scope_exhausted=ScopeExhaustion.NEXT_SCOPE,
            name="sex_ensemble",
        )
        try:
            value = await runner.run()
        except StrategiesExhausted:
            logger.info("Sex ensemble found no definitive answer")
            return ""

        logger.info(
            "Sex resolved by ensemble",
            extra={"model": runner.attempts[-1].scope, "stage": runner.attempts[-1].strategy},
        )
        return value if value in SEX_VALUES else ""
