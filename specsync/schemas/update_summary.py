from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from .change_item import ChangeItem
from .detection import DetectionResult


class UpdateResult(BaseModel):
    type: str = Field(..., description="Module group the strategy patched")
    updates: List[str] = Field(default_factory=list, description="One line per patched setting")
    unhandled: List[str] = Field(default_factory=list, description="Detail keys with nothing to patch")
    success: bool = True


class UpdateSummary(BaseModel):
    """Produced by the update dispatcher, written to a timestamped report file."""
    timestamp: str
    automatic_updates: int
    manual_review_required: int
    results: List[UpdateResult] = Field(default_factory=list)
    manual_review_items: List[ChangeItem] = Field(default_factory=list)
    success: bool
    next_steps: List[str] = Field(default_factory=list)


SyncState = Literal[
    "idle",
    "fingerprinted",
    "unchanged",
    "parsed",
    "diffed",
    "classified",
    "auto_applied",
    "manual_review_pending",
    "recorded",
]


class SyncOutcome(BaseModel):
    state: SyncState
    dispatch: Optional[Literal["auto_applied", "manual_review_pending"]] = Field(
        None, description="How the dispatched changes settled; unset when nothing was dispatched"
    )
    detection: DetectionResult
    summary: Optional[UpdateSummary] = None
    report_path: Optional[str] = None
