"""
Primary/secondary model fallback.

Every call kind is described by a ``CallPolicy`` record and run through the
same ``FallbackOrchestrator``::

    Start -> PrimaryAttempt -> Done
                            -> FallbackAttempt -> Done | Failed
                            -> Failed

A fallback hop happens at most once, only for failure reasons listed in the
policy (by default: the model is unavailable to this key), or for an empty
answer when the policy opts into ``retry_on_empty``. The secondary attempt is
final whatever its outcome.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from . import config as app_config
from .errors import EmptyResult, FailureReason, VibefitError
from .extraction import extract_image, extract_text
from .gateway import GenerationGateway
from .metrics import Timer, record_fallback, record_model_call
from .models import Failure, GenerationConfig, GenerationResult, ModelCallOutcome, ModelRequest
from .request_builder import degrade_for_fallback_chat_model, degrade_for_fallback_image_model

logger = logging.getLogger(__name__)


class CallKind(str, Enum):
    ANALYZE = "analyze"
    GENERATE = "generate"
    EDIT = "edit"
    CHAT = "chat"
    TRANSCRIBE = "transcribe"


def keep_config(config: GenerationConfig) -> GenerationConfig:
    return config


@dataclass(frozen=True)
class CallPolicy:
    kind: CallKind
    primary_model: str
    secondary_model: Optional[str] = None
    degrade: Callable[[GenerationConfig], GenerationConfig] = keep_config
    extract: Callable[[Any], Any] = extract_text
    fallback_reasons: FrozenSet[FailureReason] = frozenset(
        {FailureReason.CAPABILITY_UNAVAILABLE}
    )
    retry_on_empty: bool = False

    @property
    def has_secondary(self) -> bool:
        # A secondary equal to the primary would re-issue the same call.
        return self.secondary_model is not None and self.secondary_model != self.primary_model

    def falls_back_on(self, failure: Failure) -> bool:
        return self.has_secondary and failure.reason in self.fallback_reasons

    def retries_empty(self) -> bool:
        return self.has_secondary and self.retry_on_empty


def default_policies() -> Dict[CallKind, CallPolicy]:
    return {
        CallKind.ANALYZE: CallPolicy(
            kind=CallKind.ANALYZE,
            primary_model=app_config.ANALYSIS_MODEL,
        ),
        CallKind.GENERATE: CallPolicy(
            kind=CallKind.GENERATE,
            primary_model=app_config.IMAGE_MODEL,
            secondary_model=app_config.IMAGE_FALLBACK_MODEL,
            degrade=degrade_for_fallback_image_model,
            extract=extract_image,
            retry_on_empty=True,
        ),
        CallKind.EDIT: CallPolicy(
            kind=CallKind.EDIT,
            primary_model=app_config.EDIT_MODEL,
            secondary_model=app_config.EDIT_FALLBACK_MODEL,
            degrade=degrade_for_fallback_image_model,
            extract=extract_image,
            retry_on_empty=True,
        ),
        CallKind.CHAT: CallPolicy(
            kind=CallKind.CHAT,
            primary_model=app_config.CHAT_MODEL,
            secondary_model=app_config.CHAT_FALLBACK_MODEL,
            degrade=degrade_for_fallback_chat_model,
        ),
        CallKind.TRANSCRIBE: CallPolicy(
            kind=CallKind.TRANSCRIBE,
            primary_model=app_config.TRANSCRIBE_MODEL,
        ),
    }


def _is_empty(payload: Any) -> bool:
    return payload is None or payload == ""


class FallbackOrchestrator:
    def __init__(self, gateway: GenerationGateway) -> None:
        self.gateway = gateway

    async def run(self, policy: CallPolicy, request: ModelRequest) -> GenerationResult:
        outcome, payload = await self._attempt(policy, policy.primary_model, request)

        primary_error: VibefitError
        if isinstance(outcome, Failure):
            primary_error = outcome.error
            if not policy.falls_back_on(outcome):
                logger.error(
                    "%s failed on %s (%s): %s",
                    policy.kind.value,
                    policy.primary_model,
                    outcome.reason.value,
                    outcome.message,
                )
                raise primary_error
        elif _is_empty(payload) and policy.retries_empty():
            primary_error = EmptyResult(
                f"No output generated from {policy.primary_model}."
            )
        else:
            return GenerationResult(payload=payload, model=policy.primary_model)

        secondary_model = policy.secondary_model
        if secondary_model is None:
            raise primary_error
        logger.warning(
            "%s: %s unusable (%s); falling back to %s",
            policy.kind.value,
            policy.primary_model,
            primary_error.reason.value,
            secondary_model,
        )
        record_fallback(policy.kind.value)

        degraded = dataclasses.replace(request, config=policy.degrade(request.config))
        outcome, payload = await self._attempt(policy, secondary_model, degraded)
        if isinstance(outcome, Failure):
            error = outcome.error
            if error is primary_error:
                raise error
            error.primary_failure = primary_error
            logger.error(
                "%s fallback %s failed (%s): %s",
                policy.kind.value,
                secondary_model,
                outcome.reason.value,
                outcome.message,
            )
            raise error from primary_error
        return GenerationResult(payload=payload, model=secondary_model, fallback_used=True)

    async def _attempt(
        self, policy: CallPolicy, model: str, request: ModelRequest
    ) -> Tuple[ModelCallOutcome, Any]:
        logger.info("%s: calling %s", policy.kind.value, model)
        with Timer() as timer:
            outcome = await self.gateway.invoke(model, request)
        if isinstance(outcome, Failure):
            record_model_call(policy.kind.value, model, outcome.reason.value, timer.elapsed)
            return outcome, None
        payload = policy.extract(outcome.response)
        label = "empty" if _is_empty(payload) else "ok"
        record_model_call(policy.kind.value, model, label, timer.elapsed)
        return outcome, payload
