"""Pitch generation: prompts, response repair, local fallback."""

from storycraft.generation.repair import (
    MAX_INPUT_LENGTH,
    MAX_PITCH_LENGTH,
    MAX_TOPICS,
    MIN_PITCH_LENGTH,
    Analysis,
    RepairFailure,
    RepairInputRejected,
    ResponseRepairParser,
    StructuredRecord,
    repair_to_structured_record,
)

__all__ = [
    "MAX_INPUT_LENGTH",
    "MAX_PITCH_LENGTH",
    "MAX_TOPICS",
    "MIN_PITCH_LENGTH",
    "Analysis",
    "RepairFailure",
    "RepairInputRejected",
    "ResponseRepairParser",
    "StructuredRecord",
    "repair_to_structured_record",
]
