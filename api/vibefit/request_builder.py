from __future__ import annotations

import dataclasses
from typing import Sequence

from . import config as app_config
from .models import (
    AspectRatio,
    AudioClip,
    ContentPart,
    ConversationTurn,
    GenerationConfig,
    ImageAsset,
    ImageQuality,
    Message,
    ModelRequest,
    Role,
)

ANALYSIS_SYSTEM_PROMPT = """
You are VibefIT Designer, an advanced AI that creates realistic outfit previews.
Your job is to:
1. Analyze the user's body, pose, and style using their photo.
2. Analyze the clothing image.
3. Generate a visual description and image-generation instructions to create a realistic preview of the user wearing the clothing.
4. Never modify sensitive physical traits.
5. Produce:
   - High-quality instructions for generating the try-on preview
   - A styling explanation
   - A JSON block for developers
6. Be extremely detailed and clear.

Output Format:
Produce EXACTLY these 3 sections:
---
✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS
A detailed paragraph telling the image model how to generate an image of the user wearing the clothing.
---
✅ B) STYLING RECOMMENDATIONS
Give professional fashion stylist notes.
---
✅ C) JSON FOR DEVELOPERS
{
  "fit": "Describe the fit type (e.g., slim, regular, loose, oversized) and how it adheres to the body (e.g., 'cinched at waist', 'drapes loosely over shoulders', 'structured fit'). Be specific about fabric tension and drape.",
  "alignment": "",
  "lighting_fix": "",
  "cloth_behavior": "",
  "warnings": [],
  "ideal_output_description": ""
}
"""

USER_PHOTO_LABEL = "This is the User Photo."
GARMENT_PHOTO_LABEL = "This is the Clothing Photo. Perform the analysis."
TRANSCRIBE_INSTRUCTION = "Transcribe this audio exactly."


def _user_request(*parts: ContentPart, config: GenerationConfig = GenerationConfig()) -> ModelRequest:
    return ModelRequest(contents=(Message(role=Role.USER, parts=tuple(parts)),), config=config)


def build_analyze_request(user_image: ImageAsset, garment_image: ImageAsset) -> ModelRequest:
    return _user_request(
        ContentPart.of_text(ANALYSIS_SYSTEM_PROMPT),
        ContentPart.of_binary(user_image),
        ContentPart.of_text(USER_PHOTO_LABEL),
        ContentPart.of_binary(garment_image),
        ContentPart.of_text(GARMENT_PHOTO_LABEL),
    )


def build_generate_request(
    instructions: str,
    user_image: ImageAsset,
    aspect_ratio: AspectRatio,
    quality: ImageQuality,
) -> ModelRequest:
    return _user_request(
        ContentPart.of_text(instructions),
        ContentPart.of_binary(user_image),
        config=GenerationConfig(aspect_ratio=aspect_ratio, quality=quality),
    )


def degrade_for_fallback_image_model(config: GenerationConfig) -> GenerationConfig:
    # Output size is a primary-model capability only.
    return dataclasses.replace(config, quality=None)


def build_edit_request(
    image: ImageAsset,
    instruction: str,
    aspect_ratio: AspectRatio,
) -> ModelRequest:
    return _user_request(
        ContentPart.of_binary(image),
        ContentPart.of_text(instruction),
        config=GenerationConfig(aspect_ratio=aspect_ratio),
    )


def build_chat_request(
    history: Sequence[ConversationTurn],
    message: str,
    *,
    use_search: bool = False,
    use_thinking: bool = False,
) -> ModelRequest:
    contents = [
        Message(role=turn.role, parts=(ContentPart.of_text(turn.text),))
        for turn in history
    ]
    contents.append(Message(role=Role.USER, parts=(ContentPart.of_text(message),)))
    return ModelRequest(
        contents=tuple(contents),
        config=GenerationConfig(
            search_enabled=use_search,
            thinking_budget=app_config.THINKING_BUDGET if use_thinking else None,
        ),
    )


def degrade_for_fallback_chat_model(config: GenerationConfig) -> GenerationConfig:
    return dataclasses.replace(config, thinking_budget=None)


def build_transcribe_request(audio: AudioClip) -> ModelRequest:
    return _user_request(
        ContentPart.of_binary(audio),
        ContentPart.of_text(TRANSCRIBE_INSTRUCTION),
    )
