from pydantic import BaseModel, Field
from typing import Any, List, Literal, Optional

ChangeType = Literal["sources", "content-rules", "validation-rules", "output-structure", "templates"]
Severity = Literal["low", "medium", "high"]


class DifferenceItem(BaseModel):
    key: str
    kind: Literal["added", "removed", "modified"]
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None


class ChangeItem(BaseModel):
    """One classified structural difference between two config snapshots."""
    type: ChangeType
    description: str
    impact_target: str = Field(..., description="Downstream module group affected by this change")
    severity: Severity
    details: List[DifferenceItem] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Set when applying the change failed")


class ChangeHistoryEntry(BaseModel):
    timestamp: str
    fingerprint: str
    changes: List[ChangeItem] = Field(default_factory=list)
    processed: bool = False


class ChangeHistory(BaseModel):
    """Persisted by the history store: last fingerprint plus a capped entry log."""
    last_fingerprint: str = ""
    last_analysis: Optional[str] = None
    entries: List[ChangeHistoryEntry] = Field(default_factory=list)
