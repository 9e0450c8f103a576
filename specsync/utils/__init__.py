from .json_utils import canonical_json, write_text_atomic
from .report_utils import ReportManager

__all__ = ["canonical_json", "write_text_atomic", "ReportManager"]
