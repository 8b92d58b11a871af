"""Domain enumerations for deal qualification.

These enums capture the fixed vocabularies used across the domain layer:
the qualification verdict and the kind of output a pipeline stage produces.
"""

from enum import Enum


class QualificationVerdict(Enum):
    """Go / no-go outcome for a deal."""

    GO = "GO"
    REVIEW = "REVIEW"
    NO_GO = "NO-GO"


class StageKind(Enum):
    """What a pipeline stage writes into the evaluation state."""

    SCORED = "scored"  # weighted criteria -> DimensionScore
    FLAGS = "flags"  # unweighted list of RedFlag
