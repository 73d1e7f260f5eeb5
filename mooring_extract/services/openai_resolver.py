from __future__ import annotations

import json
import logging
import os
from typing import Any

from openai import AsyncOpenAI

from ..models.component import ComponentType, Specifications
from .resolver import DEFAULT_CONFIDENCE, ResolutionError, ResolutionRequest, ResolutionResult

"""OpenAI-backed ComponentResolver.

Asks a chat model for a JSON object describing one ambiguous mooring row and
converts the answer into a ``ResolutionResult``. Anything that is not a JSON
object raises ``ResolutionError``; the ambiguity resolver turns that into a
fallback.
"""

__all__ = [
    "OpenAIComponentResolver",
    "parse_answer",
]

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = (
    "You classify components of aquaculture mooring systems from short "
    "Norwegian or English descriptions. Answer with one JSON object only, keys: "
    "component_type (one of: " + ", ".join(t.value for t in ComponentType) + "), "
    "subtype, manufacturer, part_number, tracking_number, "
    "specifications {weight_kg, length_m, diameter_mm, capacity_t}, confidence (0-1). "
    "Use null for anything not stated. Never move a tracking number into "
    "part_number or the other way round."
)


def _clean_json_response(text: str) -> str:
    t = text.strip()
    if t.startswith("```json"):
        t = t[7:]
    if t.startswith("```"):
        t = t[3:]
    if t.endswith("```"):
        t = t[:-3]
    return t.strip()


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _opt_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "."))
    except ValueError:
        return None


def parse_answer(content: str | None) -> ResolutionResult:
    """Convert the model's text answer to a ResolutionResult.

    Raises:
        ResolutionError: empty answer, invalid JSON, or not a JSON object.
    """
    if not content:
        raise ResolutionError("empty answer")
    try:
        data = json.loads(_clean_json_response(content))
    except json.JSONDecodeError as e:
        raise ResolutionError(f"answer is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ResolutionError("answer is not a JSON object")

    specs_raw = data.get("specifications") or {}
    if not isinstance(specs_raw, dict):
        raise ResolutionError("specifications is not an object")
    specifications = Specifications(
        weight_kg=_opt_float(specs_raw.get("weight_kg")),
        length_m=_opt_float(specs_raw.get("length_m")),
        diameter_mm=_opt_float(specs_raw.get("diameter_mm")),
        capacity_t=_opt_float(specs_raw.get("capacity_t")),
    )

    confidence = _opt_float(data.get("confidence"))
    type_raw = data.get("component_type")
    return ResolutionResult(
        confidence=DEFAULT_CONFIDENCE if confidence is None else confidence,
        component_type=ComponentType.parse(type_raw) if type_raw else None,
        subtype=_opt_str(data.get("subtype")),
        manufacturer=_opt_str(data.get("manufacturer")),
        part_number=_opt_str(data.get("part_number")),
        tracking_number=_opt_str(data.get("tracking_number")),
        specifications=None if specifications.is_empty else specifications,
    )


class OpenAIComponentResolver:
    """ComponentResolver using the OpenAI chat completions API."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        *,
        model: str | None = None,
        api_key: str | None = None,
    ) -> None:
        self.client = client or AsyncOpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_MODEL

    def _user_message(self, request: ResolutionRequest) -> str:
        return json.dumps(
            {
                "raw_text": request.raw_text,
                "manufacturer_field": request.manufacturer_field,
                "existing_part_number": request.existing_part_number,
                "existing_tracking_number": request.existing_tracking_number,
            },
            ensure_ascii=False,
        )

    async def resolve(self, request: ResolutionRequest) -> ResolutionResult:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._user_message(request)},
            ],
        )
        if not response.choices:
            raise ResolutionError("no choices in response")
        content = response.choices[0].message.content
        logger.debug("resolver answer text=%r content=%r", request.raw_text, content)
        return parse_answer(content)
