from __future__ import annotations

from api.vibefit.models import AnalysisResult
from api.vibefit.parsing import (
    INSTRUCTIONS_FALLBACK,
    STYLING_FALLBACK,
    TECHNICAL_FALLBACK,
    parse_analysis,
    technical_details,
)

WELL_FORMED = """Sure, here is the analysis.
---
✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS
  Render the person in a slim navy blazer, keep the pose and lighting.
---
✅ B) STYLING RECOMMENDATIONS
Pair with light chinos.
Roll the sleeves once.
---
✅ C) JSON FOR DEVELOPERS
{
  "fit": "slim",
  "warnings": []
}
"""


def test_parse_well_formed_sections():
    result = parse_analysis(WELL_FORMED)
    assert result.instructions == "Render the person in a slim navy blazer, keep the pose and lighting."
    assert result.styling == "Pair with light chinos.\nRoll the sleeves once."
    assert result.technical_json == '{\n  "fit": "slim",\n  "warnings": []\n}'


def test_parse_missing_markers_returns_fallbacks():
    result = parse_analysis("The model rambled without any sections.")
    assert result == AnalysisResult(
        instructions=INSTRUCTIONS_FALLBACK,
        styling=STYLING_FALLBACK,
        technical_json=TECHNICAL_FALLBACK,
    )


def test_parse_empty_and_none_never_fail():
    assert parse_analysis("").instructions == INSTRUCTIONS_FALLBACK
    assert parse_analysis(None).technical_json == TECHNICAL_FALLBACK


def test_parse_partial_output_keeps_found_sections():
    text = "✅ B) STYLING RECOMMENDATIONS\nWear boots.\n---\n✅ C) JSON FOR DEVELOPERS\nnot json at all"
    result = parse_analysis(text)
    assert result.instructions == INSTRUCTIONS_FALLBACK
    assert result.styling == "Wear boots."
    assert result.technical_json == "not json at all"


def test_section_without_closing_delimiter_falls_back():
    result = parse_analysis("✅ A) TRY-ON PREVIEW IMAGE INSTRUCTIONS\nnever closed")
    assert result.instructions == INSTRUCTIONS_FALLBACK


def test_technical_details_decodes_json_and_fences():
    assert technical_details(parse_analysis(WELL_FORMED)) == {"fit": "slim", "warnings": []}
    fenced = AnalysisResult("i", "s", '```json\n{"fit": "loose"}\n```')
    assert technical_details(fenced) == {"fit": "loose"}


def test_technical_details_tolerates_malformed_content():
    assert technical_details(AnalysisResult("i", "s", "{broken")) is None
    assert technical_details(AnalysisResult("i", "s", "[1, 2]")) is None
    assert technical_details(AnalysisResult("i", "s", TECHNICAL_FALLBACK)) is None
