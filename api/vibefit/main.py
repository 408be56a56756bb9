from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .aspect import aspect_ratio_for_image
from .config import CORS_ALLOW_ORIGIN_REGEX, CORS_ALLOW_ORIGINS, LOG_LEVEL
from .errors import (
    CapabilityUnavailable,
    EmptyResult,
    InvalidInput,
    RequestRejected,
    TransportFailure,
    VibefitError,
)
from .gateway import GeminiGateway
from .intake import PayloadRejected, require_audio, require_images
from .metrics import increment, observe_latency, snapshot
from .parsing import parse_analysis
from .schemas import (
    AnalysisPayload,
    AnalyzeRequest,
    AnalyzeResponse,
    ChatRequest,
    EditImageRequest,
    GenerateImageRequest,
    ImageResponse,
    TextResponse,
    TranscribeRequest,
    TryOnRequest,
    TryOnResponse,
)
from .tryon_pipeline import TryOnPipeline


logger = logging.getLogger(__name__)
logging.getLogger("api.vibefit").setLevel(LOG_LEVEL)

_GATEWAY: Optional[GeminiGateway] = None


def get_gateway() -> GeminiGateway:
    global _GATEWAY
    if _GATEWAY is None:
        try:
            _GATEWAY = GeminiGateway()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
            ) from exc
    return _GATEWAY


def get_tryon_pipeline(gateway: GeminiGateway = Depends(get_gateway)) -> TryOnPipeline:
    return TryOnPipeline(gateway)


app = FastAPI(
    title="VibefIT API",
    version="0.1.0",
    description="Try-on previews, image edits and a styling chat backed by Gemini.",
)

if CORS_ALLOW_ORIGIN_REGEX is None and CORS_ALLOW_ORIGINS == ["*"]:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_origin_regex=CORS_ALLOW_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(PayloadRejected)
async def payload_rejected_handler(request: Request, exc: PayloadRejected):
    if exc.too_large:
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif any(issue.code == "invalid_image" for issue in exc.issues):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(
        status_code=code,
        content={"error": str(exc), "issues": [issue.__dict__ for issue in exc.issues]},
    )


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(VibefitError)
async def generation_error_handler(request: Request, exc: VibefitError):
    if isinstance(exc, TransportFailure):
        code = status.HTTP_502_BAD_GATEWAY
    elif (
        isinstance(exc, (CapabilityUnavailable, RequestRejected))
        and exc.status_code
        and 400 <= exc.status_code < 600
    ):
        code = exc.status_code
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(code, exc.message)


@app.middleware("http")
async def log_and_measure_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start
    label = f"{request.method} {request.url.path}"
    increment("requests_total", label)
    observe_latency("http_request_seconds", label, duration)
    response.headers["X-Process-Time"] = f"{duration:.3f}s"
    logger.info("%s %s -> %s (%.3fs)", request.method, request.url.path, response.status_code, duration)
    return response


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.get("/metrics")
async def metrics():
    return JSONResponse(status_code=status.HTTP_200_OK, content=snapshot())


@app.post("/api/analyze")
async def analyze(
    request: AnalyzeRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    user_image, garment_image = require_images(
        userImageBase64=request.user_image_base64,
        clothImageBase64=request.cloth_image_base64,
    )
    text = await pipeline.analyze_text(user_image, garment_image)
    analysis = parse_analysis(text)
    response = AnalyzeResponse(
        text=text,
        analysis=AnalysisPayload.from_result(analysis),
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(by_alias=True))


@app.post("/api/generate-image")
async def generate_image(
    request: GenerateImageRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    (user_image,) = require_images(userImageBase64=request.user_image_base64)
    aspect_ratio = request.aspect_ratio or aspect_ratio_for_image(user_image)
    result = await pipeline.generate(request.prompt, user_image, aspect_ratio, request.image_size)
    if result.payload is None:
        raise EmptyResult("No image generated.")
    response = ImageResponse(image_url=result.payload.data_uri, model=result.model)
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(by_alias=True))


@app.post("/api/tryon")
async def tryon(
    request: TryOnRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    user_image, garment_image = require_images(
        userImageBase64=request.user_image_base64,
        clothImageBase64=request.cloth_image_base64,
    )
    aspect_ratio = request.aspect_ratio or aspect_ratio_for_image(user_image)
    result = await pipeline.run_try_on(user_image, garment_image, aspect_ratio, request.image_size)
    if result.image is None:
        raise EmptyResult("No image generated.")
    response = TryOnResponse(
        analysis=AnalysisPayload.from_result(result.analysis),
        image_url=result.image.data_uri,
        model=result.model,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(by_alias=True))


@app.post("/api/edit-image")
async def edit_image(
    request: EditImageRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    (image,) = require_images(imageBase64=request.image_base64)
    edited = await pipeline.run_edit(image, request.prompt, request.aspect_ratio)
    response = ImageResponse(image_url=edited.data_uri)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=response.model_dump(by_alias=True, exclude_none=True),
    )


@app.post("/api/chat")
async def chat(
    request: ChatRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    history = [turn.to_turn() for turn in request.history]
    text = await pipeline.run_chat(
        history,
        request.message,
        use_search=request.use_search,
        use_thinking=request.use_thinking,
    )
    return JSONResponse(status_code=status.HTTP_200_OK, content=TextResponse(text=text).model_dump())


@app.post("/api/transcribe")
async def transcribe(
    request: TranscribeRequest,
    pipeline: TryOnPipeline = Depends(get_tryon_pipeline),
):
    audio = require_audio(request.audio_base64, request.mime_type)
    text = await pipeline.run_transcribe(audio)
    return JSONResponse(status_code=status.HTTP_200_OK, content=TextResponse(text=text).model_dump())
