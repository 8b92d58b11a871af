"""Presentation layer for the deal qualifier.

Public API
----------
- :class:`EvaluationDashboard` -- rich (or plain-text) console output
- :func:`state_to_dict`, :func:`export_json` -- serialisation utilities
"""

from deal_qualifier.presentation.console import EvaluationDashboard
from deal_qualifier.presentation.export import export_json, state_to_dict

__all__ = [
    "EvaluationDashboard",
    "export_json",
    "state_to_dict",
]
