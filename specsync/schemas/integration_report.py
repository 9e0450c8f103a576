from pydantic import BaseModel, Field
from typing import Any, List, Optional


class IntegrationMismatch(BaseModel):
    group: str
    module: str
    setting: str
    expected: Optional[Any] = None
    actual: Optional[Any] = None


class IntegrationReport(BaseModel):
    """Downstream module settings checked against the current config snapshot."""
    checked: int = 0
    mismatches: List[IntegrationMismatch] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list, description="Settings files or keys that could not be read")
    valid: bool = True
