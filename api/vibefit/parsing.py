"""
Parsing of the analysis model's three-section answer.

The analysis prompt asks for::

    ---
    ✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS
    ...
    ---
    ✅ B) STYLING RECOMMENDATIONS
    ...
    ---
    ✅ C) JSON FOR DEVELOPERS
    { ... }

Each section is extracted on its own so a missing or mangled section only
costs that one field.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from .models import AnalysisResult

logger = logging.getLogger(__name__)

INSTRUCTIONS_LABEL = "✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS"
STYLING_LABEL = "✅ B) STYLING RECOMMENDATIONS"
TECHNICAL_LABEL = "✅ C) JSON FOR DEVELOPERS"
SECTION_DELIMITER = "---"

INSTRUCTIONS_FALLBACK = "Analysis unavailable: no try-on instructions were produced."
STYLING_FALLBACK = "Analysis unavailable: no styling advice was produced."
TECHNICAL_FALLBACK = "Analysis unavailable."

_INSTRUCTIONS_RE = re.compile(
    re.escape(INSTRUCTIONS_LABEL) + r"(.*?)" + re.escape(SECTION_DELIMITER), re.DOTALL
)
_STYLING_RE = re.compile(
    re.escape(STYLING_LABEL) + r"(.*?)" + re.escape(SECTION_DELIMITER), re.DOTALL
)
_TECHNICAL_RE = re.compile(re.escape(TECHNICAL_LABEL) + r"(.*)\Z", re.DOTALL)
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _section(pattern: re.Pattern, text: str, fallback: str) -> str:
    match = pattern.search(text)
    if match is None:
        return fallback
    return match.group(1).strip()


def parse_analysis(raw_text: Optional[str]) -> AnalysisResult:
    text = raw_text or ""
    result = AnalysisResult(
        instructions=_section(_INSTRUCTIONS_RE, text, INSTRUCTIONS_FALLBACK),
        styling=_section(_STYLING_RE, text, STYLING_FALLBACK),
        technical_json=_section(_TECHNICAL_RE, text, TECHNICAL_FALLBACK),
    )
    if result.instructions == INSTRUCTIONS_FALLBACK:
        logger.warning("Analysis text has no instructions section (%d chars).", len(text))
    return result


def technical_details(result: AnalysisResult) -> Optional[Dict[str, Any]]:
    """Best-effort decode of the developer JSON block for display.

    Returns ``None`` for anything that is not a JSON object.
    """
    text = result.technical_json.strip()
    fenced = _CODE_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None
