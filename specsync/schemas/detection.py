from pydantic import BaseModel, Field
from typing import List, Optional

from .change_item import ChangeItem
from .impact import ImpactAnalysis
from .parsed_spec import ParsedSpec


class DetectionResult(BaseModel):
    has_changes: bool
    fingerprint: str
    message: str = ""
    changes: List[ChangeItem] = Field(default_factory=list)
    impact_analysis: Optional[ImpactAnalysis] = None
    parsed: Optional[ParsedSpec] = Field(None, exclude=True)


class ChangeReportSummary(BaseModel):
    timestamp: str
    total_changes: int
    estimated_effort: str
    auto_updateable: bool


class ChangeReportRow(BaseModel):
    type: str
    description: str
    severity: str
    impact_target: str
    detail_count: int


class ChangeReportImpact(BaseModel):
    modules_affected: int
    update_actions: int
    manual_review_items: int


class ChangeReport(BaseModel):
    """Human-facing digest of one detection, written next to the update summary."""
    summary: ChangeReportSummary
    changes: List[ChangeReportRow]
    impact: ChangeReportImpact
    recommendations: List[str]
