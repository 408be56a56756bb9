from __future__ import annotations

import asyncio

import pytest

from api.vibefit.errors import CapabilityUnavailable, EmptyResult, RequestRejected
from api.vibefit.fallback import CallKind, CallPolicy, default_policies
from api.vibefit.models import AspectRatio, AudioClip, ConversationTurn, ImageQuality, Role
from api.vibefit.parsing import STYLING_FALLBACK
from api.vibefit.tryon_pipeline import TryOnPipeline

from fakes import FakeGateway, empty_response, image_response, make_asset, text_response

POLICIES = default_policies()
ANALYSIS_MODEL = POLICIES[CallKind.ANALYZE].primary_model
IMAGE_MODEL = POLICIES[CallKind.GENERATE].primary_model
IMAGE_FALLBACK_MODEL = POLICIES[CallKind.GENERATE].secondary_model
EDIT_MODEL = POLICIES[CallKind.EDIT].primary_model
CHAT_MODEL = POLICIES[CallKind.CHAT].primary_model
TRANSCRIBE_MODEL = POLICIES[CallKind.TRANSCRIBE].primary_model

ANALYSIS_TEXT = (
    "---\n✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS\nPut the red dress on the person.\n"
    "---\n✅ B) STYLING RECOMMENDATIONS\nGold earrings.\n"
    "---\n✅ C) JSON FOR DEVELOPERS\n{\"fit\": \"regular\"}"
)


def _pipeline(script):
    gateway = FakeGateway(script)
    return gateway, TryOnPipeline(gateway)


def test_try_on_threads_instructions_into_generation():
    gateway, pipeline = _pipeline(
        {ANALYSIS_MODEL: text_response(ANALYSIS_TEXT), IMAGE_MODEL: image_response()}
    )
    user = make_asset()
    result = asyncio.run(
        pipeline.run_try_on(user, make_asset(300, 300), AspectRatio.PORTRAIT_3_4, ImageQuality.K2)
    )

    assert gateway.models_called() == [ANALYSIS_MODEL, IMAGE_MODEL]
    generate_request = gateway.calls[1][1]
    assert generate_request.contents[0].parts[0].text == "Put the red dress on the person."
    assert generate_request.contents[0].parts[1].data == user.data
    assert generate_request.config.quality is ImageQuality.K2
    assert result.analysis.styling == "Gold earrings."
    assert result.image.data_uri == "data:image/png;base64,QQ=="
    assert result.model == IMAGE_MODEL


def test_try_on_aborts_when_analysis_fails():
    gateway, pipeline = _pipeline(
        {ANALYSIS_MODEL: RequestRejected("bad image", status_code=400), IMAGE_MODEL: image_response()}
    )
    with pytest.raises(RequestRejected):
        asyncio.run(
            pipeline.run_try_on(make_asset(), make_asset(), AspectRatio.SQUARE, ImageQuality.K1)
        )
    assert IMAGE_MODEL not in gateway.models_called()
    assert IMAGE_FALLBACK_MODEL not in gateway.models_called()


def test_try_on_aborts_on_empty_analysis():
    gateway, pipeline = _pipeline({ANALYSIS_MODEL: empty_response()})
    with pytest.raises(EmptyResult):
        asyncio.run(
            pipeline.run_try_on(make_asset(), make_asset(), AspectRatio.SQUARE, ImageQuality.K1)
        )
    assert gateway.models_called() == [ANALYSIS_MODEL]


def test_try_on_with_unstructured_analysis_still_generates():
    gateway, pipeline = _pipeline(
        {ANALYSIS_MODEL: text_response("Just draw them in the coat."), IMAGE_MODEL: image_response()}
    )
    result = asyncio.run(
        pipeline.run_try_on(make_asset(), make_asset(), AspectRatio.SQUARE, ImageQuality.K1)
    )
    assert result.analysis.styling == STYLING_FALLBACK
    assert gateway.models_called() == [ANALYSIS_MODEL, IMAGE_MODEL]


def test_try_on_without_any_image_returns_none():
    gateway, pipeline = _pipeline(
        {
            ANALYSIS_MODEL: text_response(ANALYSIS_TEXT),
            IMAGE_MODEL: empty_response(),
            IMAGE_FALLBACK_MODEL: empty_response(),
        }
    )
    result = asyncio.run(
        pipeline.run_try_on(make_asset(), make_asset(), AspectRatio.SQUARE, ImageQuality.K1)
    )
    assert result.image is None
    assert result.model == IMAGE_FALLBACK_MODEL


def test_edit_returns_image():
    gateway, pipeline = _pipeline({EDIT_MODEL: image_response(data="QUJD", mime_type="image/jpeg")})
    edited = asyncio.run(pipeline.run_edit(make_asset(), "add a scarf", AspectRatio.PORTRAIT_9_16))
    assert edited.data == b"ABC"
    request = gateway.calls[0][1]
    assert request.config.aspect_ratio is AspectRatio.PORTRAIT_9_16
    assert request.config.quality is None


def test_edit_without_image_raises():
    _, pipeline = _pipeline({EDIT_MODEL: text_response("no")})
    with pytest.raises(EmptyResult, match="No edited image generated."):
        asyncio.run(pipeline.run_edit(make_asset(), "add a scarf", AspectRatio.SQUARE))


def test_chat_leaves_history_untouched():
    gateway, pipeline = _pipeline({CHAT_MODEL: text_response("Navy works.")})
    history = [ConversationTurn.user("hello"), ConversationTurn.assistant("hi!")]
    text = asyncio.run(pipeline.run_chat(history, "What matches grey?", use_search=True))
    assert text == "Navy works."
    assert len(history) == 2
    sent = gateway.calls[0][1]
    assert [message.role for message in sent.contents] == [Role.USER, Role.ASSISTANT, Role.USER]


def test_chat_falls_back_on_capability_failure():
    policy = POLICIES[CallKind.CHAT]
    gateway, pipeline = _pipeline(
        {
            CHAT_MODEL: CapabilityUnavailable("not found", status_code=404),
            policy.secondary_model: text_response("From the fallback."),
        }
    )
    assert asyncio.run(pipeline.run_chat([], "hi")) == "From the fallback."


def test_transcribe_single_model():
    gateway, pipeline = _pipeline({TRANSCRIBE_MODEL: text_response("hello world")})
    text = asyncio.run(pipeline.run_transcribe(AudioClip(data=b"wav", mime_type="audio/wav")))
    assert text == "hello world"
    assert gateway.models_called() == [TRANSCRIBE_MODEL]


def test_policies_can_be_overridden():
    custom = CallPolicy(kind=CallKind.TRANSCRIBE, primary_model="whisperish")
    gateway = FakeGateway({"whisperish": text_response("hi")})
    pipeline = TryOnPipeline(gateway, policies={CallKind.TRANSCRIBE: custom})
    assert asyncio.run(pipeline.run_transcribe(AudioClip(data=b"a", mime_type="audio/wav"))) == "hi"


def test_concurrent_calls_on_one_pipeline_are_independent():
    gateway, pipeline = _pipeline(
        {
            ANALYSIS_MODEL: text_response(ANALYSIS_TEXT),
            IMAGE_MODEL: image_response(),
            CHAT_MODEL: text_response("Try white sneakers."),
        }
    )
    history = [ConversationTurn.user("hello")]

    async def run_both():
        return await asyncio.gather(
            pipeline.run_try_on(make_asset(), make_asset(), AspectRatio.SQUARE, ImageQuality.K1),
            pipeline.run_chat(history, "Shoes?", use_thinking=True),
        )

    try_on, reply = asyncio.run(run_both())

    assert try_on.analysis.instructions == "Put the red dress on the person."
    assert try_on.model == IMAGE_MODEL
    assert reply == "Try white sneakers."
    assert sorted(gateway.models_called()) == sorted([ANALYSIS_MODEL, IMAGE_MODEL, CHAT_MODEL])
    chat_request = next(request for model, request in gateway.calls if model == CHAT_MODEL)
    assert len(chat_request.contents) == 2
    assert chat_request.config.thinking_budget is not None
    assert len(history) == 1
