# src/pipeline/stages.py — v1
"""Pipeline stages and the allowed transitions between them."""

from __future__ import annotations

from enum import Enum


class PipelineStage(str, Enum):
    START = "start"
    QUALITY_CHECK = "quality_check"
    DETECT = "detect"
    CLASSIFY = "classify"
    CACHE_LOOKUP = "cache_lookup"
    VALIDATE = "validate"
    FALLBACK = "fallback"
    CACHE_STORE = "cache_store"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({PipelineStage.DONE, PipelineStage.FAILED})

TRANSITIONS: dict[PipelineStage, frozenset[PipelineStage]] = {
    PipelineStage.START: frozenset(
        {PipelineStage.QUALITY_CHECK, PipelineStage.DETECT, PipelineStage.FAILED}
    ),
    PipelineStage.QUALITY_CHECK: frozenset({PipelineStage.DETECT, PipelineStage.FAILED}),
    PipelineStage.DETECT: frozenset({PipelineStage.CLASSIFY, PipelineStage.FAILED}),
    PipelineStage.CLASSIFY: frozenset({PipelineStage.CACHE_LOOKUP, PipelineStage.FAILED}),
    PipelineStage.CACHE_LOOKUP: frozenset(
        {PipelineStage.DONE, PipelineStage.VALIDATE, PipelineStage.FAILED}
    ),
    # Offline Uncertain runs finish at VALIDATE without storing.
    PipelineStage.VALIDATE: frozenset(
        {
            PipelineStage.CACHE_STORE,
            PipelineStage.FALLBACK,
            PipelineStage.DONE,
            PipelineStage.FAILED,
        }
    ),
    # Offline runs finish at FALLBACK without storing.
    PipelineStage.FALLBACK: frozenset(
        {PipelineStage.CACHE_STORE, PipelineStage.DONE, PipelineStage.FAILED}
    ),
    PipelineStage.CACHE_STORE: frozenset({PipelineStage.DONE, PipelineStage.FAILED}),
    PipelineStage.DONE: frozenset(),
    PipelineStage.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """A stage handler tried to move to a stage not reachable from it."""


def check_transition(current: PipelineStage, target: PipelineStage) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(f"{current.value} → {target.value} is not allowed")
