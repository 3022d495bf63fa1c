"""Detection events produced by the upstream classification pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class DetectionEvent:
    """
    "This item was seen in front of the camera."

    Events arrive already filtered by confidence upstream; the ledger never
    re-filters them.  ``label`` is the raw class name as emitted by the
    classifier and is normalized only when the ledger is touched.
    """

    label: str
    confidence_score: float | None = None
    image_ref: str | None = None
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        score = self.confidence_score
        if score is not None and not 0.0 <= score <= 1.0:
            raise ValueError(f"Confidence score must be within 0..1, got {score}")
