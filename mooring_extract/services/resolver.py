from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from ..models.component import ComponentRecord, ComponentType, ResolutionStatus, Specifications
from .extractor import Extraction

"""Ambiguity resolver.

Rows the deterministic extractor cannot settle are handed to an injected
``ComponentResolver`` capability (an LLM client in production, canned answers
in tests). ``AmbiguityResolver`` wraps that capability with:

- a content-keyed ``ResolutionCache`` owned by the caller and reset per run
- de-duplication of identical keys within a batch
- bounded fan-out: unique misses run in chunks of ``max_concurrency``
- a per-call timeout
- a conservative fallback (deterministic fields only, confidence 0.5) for
  any exception, timeout or malformed answer

Nothing raised by the capability escapes ``resolve_batch``.
"""

__all__ = [
    "DEFAULT_CONFIDENCE",
    "FALLBACK_CONFIDENCE",
    "AmbiguityResolver",
    "ComponentResolver",
    "ResolutionCache",
    "ResolutionError",
    "ResolutionOutcome",
    "ResolutionRequest",
    "ResolutionResult",
    "fallback_result",
    "merge_resolution",
    "needs_resolution",
]

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.5

CacheKey = tuple[str, str, str, str]


class ResolutionError(Exception):
    """Raised by resolver implementations for failed or unparsable answers."""


@dataclass(frozen=True)
class ResolutionRequest:
    """Input handed to the resolver capability for one ambiguous row."""
    raw_text: str
    manufacturer_field: str = ""
    existing_part_number: str | None = None
    existing_tracking_number: str | None = None

    @property
    def key(self) -> CacheKey:
        return (
            self.raw_text,
            self.manufacturer_field,
            self.existing_part_number or "",
            self.existing_tracking_number or "",
        )

    @classmethod
    def from_extraction(cls, extraction: Extraction) -> ResolutionRequest:
        return cls(
            raw_text=extraction.raw_text,
            manufacturer_field=extraction.manufacturer_field,
            existing_part_number=extraction.part_number,
            existing_tracking_number=extraction.tracking_number,
        )


@dataclass(frozen=True)
class ResolutionResult:
    """Resolver answer. Every field except ``confidence`` is optional."""
    confidence: float = DEFAULT_CONFIDENCE
    component_type: ComponentType | None = None
    subtype: str | None = None
    manufacturer: str | None = None
    part_number: str | None = None
    tracking_number: str | None = None
    specifications: Specifications | None = None


@dataclass(frozen=True)
class ResolutionOutcome:
    """Resolver answer plus how it was obtained."""
    result: ResolutionResult
    status: ResolutionStatus
    error: str | None = None  # failure reason for fallbacks


@runtime_checkable
class ComponentResolver(Protocol):
    """Capability interface for resolving one ambiguous row."""

    async def resolve(self, request: ResolutionRequest) -> ResolutionResult: ...


class ResolutionCache:
    """Content-keyed outcome cache for one run.

    Owned by the pipeline; ``reset`` starts a new run. Only touched between
    batch boundaries, never while calls for the same key are in flight.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, ResolutionOutcome] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> ResolutionOutcome | None:
        outcome = self._entries.get(key)
        if outcome is None:
            self.misses += 1
        else:
            self.hits += 1
        return outcome

    def put(self, key: CacheKey, outcome: ResolutionOutcome) -> None:
        self._entries[key] = outcome

    def reset(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


def needs_resolution(extraction: Extraction, inheritable_manufacturer: bool) -> bool:
    """Whether deterministic extraction left a required field unresolved."""
    if extraction.component_type is ComponentType.UNKNOWN:
        return True
    if not extraction.manufacturer and not inheritable_manufacturer:
        return True
    if extraction.raw_text and not extraction.part_number and not extraction.tracking_number:
        return True
    return extraction.specifications.is_empty


def fallback_result(request: ResolutionRequest) -> ResolutionResult:
    """Conservative answer that only restates the deterministic identifiers."""
    return ResolutionResult(
        confidence=FALLBACK_CONFIDENCE,
        part_number=request.existing_part_number,
        tracking_number=request.existing_tracking_number,
    )


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def merge_resolution(
    component: ComponentRecord,
    outcome: ResolutionOutcome,
    inheritable: bool = False,
) -> ComponentRecord:
    """Fill gaps in a deterministic record with the resolver's answer.

    Deterministic identifiers and specs are never overwritten; an unknown type
    is replaced by a resolved one. Fallbacks cap confidence at 0.5.

    With ``inheritable`` set the manufacturer slot is left for group
    inheritance and the resolver's manufacturer is ignored.
    """
    result = outcome.result
    component_type = component.component_type
    if component_type is ComponentType.UNKNOWN and result.component_type is not None:
        component_type = result.component_type

    manufacturer = component.manufacturer
    if not manufacturer and not inheritable:
        manufacturer = result.manufacturer

    confidence = _clamp(result.confidence)
    if outcome.status is ResolutionStatus.FALLBACK:
        confidence = min(confidence, FALLBACK_CONFIDENCE)

    return replace(
        component,
        component_type=component_type,
        subtype=component.subtype or result.subtype,
        manufacturer=manufacturer,
        part_number=component.part_number or result.part_number,
        tracking_number=component.tracking_number or result.tracking_number,
        specifications=component.specifications.merged_with(result.specifications),
        confidence=confidence,
        resolution=outcome.status,
    )


class AmbiguityResolver:
    """Batched, cached, concurrency-limited front for a ComponentResolver."""

    def __init__(
        self,
        resolver: ComponentResolver,
        cache: ResolutionCache | None = None,
        *,
        max_concurrency: int = 10,
        timeout_seconds: float | None = 30.0,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.resolver = resolver
        self.cache = cache if cache is not None else ResolutionCache()
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds
        self.external_calls = 0

    def reset(self) -> None:
        """Start a new run: clear the cache and call counter."""
        self.cache.reset()
        self.external_calls = 0

    async def resolve_batch(self, requests: Sequence[ResolutionRequest]) -> list[ResolutionOutcome]:
        """Resolve ``requests``; outcomes are returned in request order."""
        outcomes: list[ResolutionOutcome | None] = [None] * len(requests)
        pending: dict[CacheKey, list[int]] = {}

        for idx, request in enumerate(requests):
            key = request.key
            if key in pending:
                pending[key].append(idx)
                continue
            cached = self.cache.get(key)
            if cached is not None:
                outcomes[idx] = _as_cache_hit(cached)
                continue
            pending[key] = [idx]

        unique = [(key, requests[indices[0]]) for key, indices in pending.items()]
        for start in range(0, len(unique), self.max_concurrency):
            chunk = unique[start:start + self.max_concurrency]
            answers = await asyncio.gather(*(self._call(request) for _, request in chunk))
            for (key, _), outcome in zip(chunk, answers):
                self.cache.put(key, outcome)
                first, *duplicates = pending[key]
                outcomes[first] = outcome
                for idx in duplicates:
                    outcomes[idx] = _as_cache_hit(outcome)

        resolved = [o for o in outcomes if o is not None]
        if len(resolved) != len(requests):
            missing = [i for i, o in enumerate(outcomes) if o is None]
            raise RuntimeError(f"no resolution outcome for request index(es) {missing}")
        return resolved

    async def _call(self, request: ResolutionRequest) -> ResolutionOutcome:
        self.external_calls += 1
        try:
            if self.timeout_seconds is None:
                result = await self.resolver.resolve(request)
            else:
                result = await asyncio.wait_for(self.resolver.resolve(request), self.timeout_seconds)
            if not isinstance(result, ResolutionResult):
                raise ResolutionError(f"malformed resolver answer: {type(result).__name__}")
        except asyncio.TimeoutError:
            reason = f"timeout after {self.timeout_seconds}s"
        except Exception as e:  # any resolver failure degrades this row only
            reason = f"{type(e).__name__}: {e}"
        else:
            return ResolutionOutcome(result=result, status=ResolutionStatus.RESOLVED)

        logger.warning("resolution fallback text=%r reason=%s", request.raw_text, reason)
        return ResolutionOutcome(
            result=fallback_result(request),
            status=ResolutionStatus.FALLBACK,
            error=reason,
        )


def _as_cache_hit(outcome: ResolutionOutcome) -> ResolutionOutcome:
    # fallbacks stay fallbacks when served again
    if outcome.status is ResolutionStatus.FALLBACK:
        return outcome
    return replace(outcome, status=ResolutionStatus.CACHE_HIT)
