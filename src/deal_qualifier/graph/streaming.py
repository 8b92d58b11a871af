"""Progress text for streamed evaluation updates.

``EvaluationOrchestrator.stream()`` yields ``(node, partial_update)`` pairs;
``summarize_update`` turns one pair into a single line for CLI progress.
"""

from __future__ import annotations

from typing import Any

from deal_qualifier.domain.values import DimensionScore


def summarize_update(node_name: str, update: dict[str, Any]) -> str:
    """One-line progress summary of a stage's partial update."""
    parts = [node_name]
    for key, value in update.items():
        if isinstance(value, DimensionScore):
            text = f"{key}={value.score:.2f}"
            if value.degraded:
                text += " (degraded)"
            parts.append(text)
        elif key == "red_flags":
            parts.append(f"red_flags={len(value)}")
        elif key == "qualification_verdict":
            parts.append(f"verdict={getattr(value, 'value', value)}")
    return " ".join(parts)
