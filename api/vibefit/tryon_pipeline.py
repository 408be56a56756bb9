from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from .errors import EmptyResult
from .fallback import CallKind, CallPolicy, FallbackOrchestrator, default_policies
from .gateway import GenerationGateway
from .metrics import Timer, observe_latency
from .models import (
    AnalysisResult,
    AspectRatio,
    AudioClip,
    ConversationTurn,
    GenerationResult,
    ImageAsset,
    ImageQuality,
    TryOnResult,
)
from .parsing import parse_analysis
from .request_builder import (
    build_analyze_request,
    build_chat_request,
    build_edit_request,
    build_generate_request,
    build_transcribe_request,
)


logger = logging.getLogger(__name__)


class TryOnPipeline:
    """Sequences the try-on flow and the standalone edit/chat/transcribe calls.

    Holds no per-request state: concurrent calls on one instance are
    independent.
    """

    def __init__(
        self,
        gateway: GenerationGateway,
        *,
        policies: Optional[Dict[CallKind, CallPolicy]] = None,
    ) -> None:
        self.orchestrator = FallbackOrchestrator(gateway)
        self.policies = default_policies()
        if policies:
            self.policies.update(policies)

    async def analyze_text(self, user_image: ImageAsset, garment_image: ImageAsset) -> str:
        result = await self.orchestrator.run(
            self.policies[CallKind.ANALYZE],
            build_analyze_request(user_image, garment_image),
        )
        if not result.payload:
            raise EmptyResult("The analysis model returned no text.")
        return result.payload

    async def analyze(self, user_image: ImageAsset, garment_image: ImageAsset) -> AnalysisResult:
        return parse_analysis(await self.analyze_text(user_image, garment_image))

    async def generate(
        self,
        instructions: str,
        user_image: ImageAsset,
        aspect_ratio: AspectRatio,
        quality: ImageQuality,
    ) -> GenerationResult:
        return await self.orchestrator.run(
            self.policies[CallKind.GENERATE],
            build_generate_request(instructions, user_image, aspect_ratio, quality),
        )

    async def run_try_on(
        self,
        user_image: ImageAsset,
        garment_image: ImageAsset,
        aspect_ratio: AspectRatio,
        quality: ImageQuality,
    ) -> TryOnResult:
        with Timer() as timer:
            # An analysis failure propagates before any generation call is made.
            analysis = await self.analyze(user_image, garment_image)
            generated = await self.generate(
                analysis.instructions, user_image, aspect_ratio, quality
            )
        observe_latency("tryon_pipeline_seconds", f"model={generated.model}", timer.elapsed)
        if generated.payload is None:
            logger.warning("Try-on finished without an image (last model %s).", generated.model)
        return TryOnResult(analysis=analysis, image=generated.payload, model=generated.model)

    async def run_edit(
        self,
        image: ImageAsset,
        instruction: str,
        aspect_ratio: AspectRatio,
    ) -> ImageAsset:
        result = await self.orchestrator.run(
            self.policies[CallKind.EDIT],
            build_edit_request(image, instruction, aspect_ratio),
        )
        if result.payload is None:
            raise EmptyResult("No edited image generated.")
        return result.payload

    async def run_chat(
        self,
        history: Sequence[ConversationTurn],
        message: str,
        *,
        use_search: bool = False,
        use_thinking: bool = False,
    ) -> str:
        # The caller owns the history; work on a snapshot.
        snapshot = tuple(history)
        result = await self.orchestrator.run(
            self.policies[CallKind.CHAT],
            build_chat_request(
                snapshot, message, use_search=use_search, use_thinking=use_thinking
            ),
        )
        return result.payload

    async def run_transcribe(self, audio: AudioClip) -> str:
        result = await self.orchestrator.run(
            self.policies[CallKind.TRANSCRIBE],
            build_transcribe_request(audio),
        )
        return result.payload
