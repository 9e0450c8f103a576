from .parsed_spec import (
    ParsedSpec, SpecMetadata, SpecSection,
    GoalSection, SourcesSection, TemplatesSection, FileGenerationSection,
    ContentRulesSection, NavigationRulesSection, EditorialReviewSection, ValidationRulesSection,
    RepositoryRef, SourceReference, NamedReference, TemplateInfo,
)
from .change_item import ChangeItem, DifferenceItem, ChangeHistory, ChangeHistoryEntry
from .impact import ImpactAnalysis
from .detection import DetectionResult, ChangeReport, ChangeReportSummary, ChangeReportRow, ChangeReportImpact
from .update_summary import UpdateResult, UpdateSummary, SyncOutcome
from .integration_report import IntegrationReport, IntegrationMismatch

__all__ = [
    "ParsedSpec", "SpecMetadata", "SpecSection",
    "GoalSection", "SourcesSection", "TemplatesSection", "FileGenerationSection",
    "ContentRulesSection", "NavigationRulesSection", "EditorialReviewSection", "ValidationRulesSection",
    "RepositoryRef", "SourceReference", "NamedReference", "TemplateInfo",
    "ChangeItem", "DifferenceItem", "ChangeHistory", "ChangeHistoryEntry",
    "ImpactAnalysis",
    "DetectionResult", "ChangeReport", "ChangeReportSummary", "ChangeReportRow", "ChangeReportImpact",
    "UpdateResult", "UpdateSummary", "SyncOutcome",
    "IntegrationReport", "IntegrationMismatch",
]
