"""Canned stage outputs for the built-in pipeline.

``pipeline_routes()`` returns a ``ScriptedChatModel`` route table that
answers every built-in stage with well-formed JSON, keyed on a phrase that
only that stage's prompt contains.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence

from deal_qualifier.services.stages import (
    COMPETITIVE_EDGE,
    CUSTOMER_READINESS,
    STRATEGIC_FIT,
    STRATEGIC_UPSIDE,
    ScoringStageSpec,
)

# prompt marker -> stage
STAGE_MARKERS: dict[str, str] = {
    "RED FLAGS": "red_flags",
    "Market Alignment": STRATEGIC_FIT.name,
    "Stakeholder Clarity": CUSTOMER_READINESS.name,
    "Long-Term Potential": STRATEGIC_UPSIDE.name,
    "Relevant Experience": COMPETITIVE_EDGE.name,
}


def score_record_json(
    spec: ScoringStageSpec,
    score: float | Mapping[str, float] = 4,
    fenced: bool = False,
) -> str:
    """A well-formed ``{scoreBreakdown, totalScore}`` answer for *spec*."""
    breakdown = []
    for criterion in spec.criteria:
        value = score[criterion.name] if isinstance(score, Mapping) else score
        breakdown.append(
            {
                "criteria": criterion.name,
                "score": value,
                "weight": criterion.weight,
                "weightedScore": round(value * criterion.weight, 4),
                "reason": f"{criterion.name} looks solid.",
            }
        )
    total = round(sum(entry["weightedScore"] for entry in breakdown), 4)
    text = json.dumps({"scoreBreakdown": breakdown, "totalScore": total})
    return f"```json\n{text}\n```" if fenced else text


def red_flags_json(flags: Sequence[str] = ()) -> str:
    return json.dumps(
        [
            {"flag": flag, "action": "Seek clarification", "reason": f"{flag} found in RFP", "source": "RFP"}
            for flag in flags
        ]
    )


def pipeline_routes(
    score: float = 4,
    flags: Sequence[str] = (),
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Route table answering all five built-in stages.

    *overrides* maps a stage name to a replacement raw reply.
    """
    replies = {
        "red_flags": red_flags_json(flags),
        STRATEGIC_FIT.name: score_record_json(STRATEGIC_FIT, score),
        CUSTOMER_READINESS.name: score_record_json(CUSTOMER_READINESS, score),
        STRATEGIC_UPSIDE.name: score_record_json(STRATEGIC_UPSIDE, score),
        COMPETITIVE_EDGE.name: score_record_json(COMPETITIVE_EDGE, score),
    }
    replies.update(overrides or {})
    return {marker: replies[stage] for marker, stage in STAGE_MARKERS.items()}


def text_pdf_bytes(text: str) -> bytes:
    """A one-page PDF showing *text* in Helvetica, for upload tests."""
    content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    return bytes(out)
