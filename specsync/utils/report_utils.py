from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ..config import REPORT_TIMESTAMP


class ReportManager:
    def __init__(self, base_dir: str = "reports"):
        self.base_dir = Path(base_dir)

    def report_path(self, prefix: str, when: Optional[datetime] = None) -> Path:
        stamp = (when or datetime.now()).strftime(REPORT_TIMESTAMP)
        path = self.base_dir / f"{prefix}-{stamp}.json"
        # Two passes within the same second get a numbered suffix
        n = 1
        while path.exists():
            path = self.base_dir / f"{prefix}-{stamp}-{n}.json"
            n += 1
        return path

    def save_model(self, prefix: str, model: BaseModel, when: Optional[datetime] = None) -> Path:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self.report_path(prefix, when)
        with open(path, "w", encoding="utf-8") as f:
            f.write(model.model_dump_json(indent=2))
        return path
