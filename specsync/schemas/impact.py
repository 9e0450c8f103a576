from pydantic import BaseModel, Field
from typing import List, Literal

from .change_item import ChangeItem


class ImpactAnalysis(BaseModel):
    """Produced by the impact analyzer for one set of detected changes."""
    impacted_modules: List[str] = Field(default_factory=list, description="Sorted, de-duplicated module groups")
    update_actions: List[str] = Field(default_factory=list)
    manual_review_required: List[ChangeItem] = Field(default_factory=list)
    estimated_effort: Literal["low", "medium", "high"] = "low"
    auto_updateable: bool = True
