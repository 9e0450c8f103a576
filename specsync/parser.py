"""Spec document parser: markdown prose to a structured, versioned config."""
from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import yaml

from .config import (
    DEFAULT_VERSION,
    MAX_ARTICLES,
    MAX_REVIEW_CRITERIA,
    MAX_WORKFLOW_STEPS,
    TIMESTAMP_FORMAT,
)
from .schemas import (
    ContentRulesSection,
    EditorialReviewSection,
    FileGenerationSection,
    GoalSection,
    NamedReference,
    NavigationRulesSection,
    ParsedSpec,
    RepositoryRef,
    SourceReference,
    SourcesSection,
    SpecMetadata,
    TemplateInfo,
    TemplatesSection,
    ValidationRulesSection,
)

log = logging.getLogger(__name__)


class ParseFailure(Exception):
    """The spec file could not be read at all."""


# ---------------------------------------------------------------------------
# Section lookup: first alias present in the document wins
# ---------------------------------------------------------------------------

SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "goal": ("goal", "goals", "purpose", "overview"),
    "sources": ("sources_of_truth", "sources", "source_files"),
    "templates": ("templates", "template_files"),
    "file_generation": ("file_generation", "content_arrangement_and_file_generation", "output", "output_structure"),
    "content_rules": ("content_rules", "content_arrangement_and_file_generation", "formatting_rules"),
    "navigation_rules": ("navigation_rules", "navigation", "table_of_contents"),
    "editorial_review": ("editorial_review",),
    "validation_rules": ("validation_rules", "validation", "quality_checks"),
}

REQUIRED_SECTIONS = ("goal", "sources")

# ---------------------------------------------------------------------------
# URL markers
# ---------------------------------------------------------------------------

HOSTING_MARKERS = ("github.com", "gitlab.com", "bitbucket.org", "dev.azure.com")
DOCS_MARKER = "docs"
LIVE_DOCS_MARKERS = ("learn.microsoft.com", "docs.microsoft.com", "readthedocs.io", "readthedocs.org")
COMMANDS_MARKERS = ("commands",)
EXAMPLES_MARKERS = ("example", "prompts")
TOOLS_JSON_MARKER = "tools.json"
NAVIGATION_FILES = ("TOC.yml", "index.yml")

PRIMARY_TEMPLATE_MARKERS = ("generated-documentation",)
PARTIAL_TEMPLATE_MARKERS = ("new",)

DEFAULT_TITLE = "Documentation Generation Spec"
DEFAULT_DESCRIPTION = "Automated generation of reference documentation from engineering sources"
DEFAULT_GOAL = "Generate comprehensive reference documentation for every documented tool"
DEFAULT_TEMPLATES = (
    ("generated-documentation.template.md", "primary"),
    ("new.template.md", "partial"),
)
DEFAULT_NAVIGATION_ORDERING = "Prioritize core services, then alphabetical"
DEFAULT_REVIEW_PROCESS = "Manual review required for generated content"
DEFAULT_REVIEW_CRITERIA = [
    "Technical accuracy",
    "Completeness of examples",
    "Clarity of explanations",
    "Consistency with style guide",
]
DEFAULT_LANDING_PAGE_MAX_TOOLS = 15

# ---------------------------------------------------------------------------
# Keyword rule tables: (group, field, pattern, value).
# A callable value receives the regex match; anything else is used as-is.
# ---------------------------------------------------------------------------


def _first_int(m: re.Match) -> int:
    return int(m.group(1))


def _quoted_list(m: re.Match) -> list[str]:
    return re.findall(r"[\"“]([^\"”]+)[\"”]", m.group(1))


RuleTable = list[tuple[str, str, str, Any]]

CONTENT_RULE_PATTERNS: RuleTable = [
    ("example-prompts", "count", r"\b(\d+)\s+example prompts", _first_int),
    ("example-prompts", "variety", r"variety of (?:questions|statements)", ["question", "statement", "incomplete", "verbose"]),
    ("parameters", "format", r"required or optional", "Required or Optional"),
    ("parameters", "exclude-global", r"(?:don'?t|do not) duplicate (?:global )?parameters", True),
    ("headers", "case", r"sentence case", "sentence"),
    ("headers", "html-comments", r"html comment containing the (?:exact )?command", True),
    ("links", "type", r"relative and not absolute", "relative"),
    ("links", "exclude-language-codes", r"must not include the language code", True),
    ("markdown", "bullets", r"bullets use `-`", "dash"),
    ("markdown", "no-prerequisites", r"(?:doesn'?t|does not) have a prereq", True),
]

VALIDATION_RULE_PATTERNS: RuleTable = [
    ("content", "max-landing-page-tools", r"more than (\d+) individual tools", _first_int),
    ("content", "example-format", r"bold summary format without quotes", "bold-summary-without-quotes"),
    ("structure", "h3-avoid", r"no h3 headings for ([^\n]+)", _quoted_list),
    ("structure", "example-prompts-placement", r"example prompts section appears before (?:the )?parameters", "before-parameters"),
]

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})(.*)$")
_URL_RE = re.compile(r"https?://[^\s<>()\[\]`\"']+")
_NUMBERED_RE = re.compile(r"^\d+[.)]\s+(.+)$")
_BULLET_RE = re.compile(r"^[-*+]\s+(.+)$")
_TEMPLATE_RE = re.compile(r"`([^`\n]*template[^`\n]*\.md)`", re.IGNORECASE)
_BASE_DIR_RE = re.compile(r"`(\./[^`\s]*/)`")
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}|YYYY-MM-DD_HH-mm-ss")
_SUBDIR_RE = re.compile(r"`\./[^`\n]+`\s*[-:]\s*([^\n]+)")
_OUTPUT_FILE_RE = re.compile(r"`([^`\s]+\.(?:md|json|ya?ml|log|txt))`", re.IGNORECASE)
_REPO_PART_RE = re.compile(r"^https?://[^/]+/([^/?#]+/[^/?#]+)")


@dataclass
class _Section:
    key: str
    title: str
    level: int
    prose: list[str] = field(default_factory=list)   # stripped, non-empty, outside fences


@dataclass
class _Document:
    sections: dict[str, _Section]
    title: str
    intro: list[str]            # prose before the first level-2+ heading
    prose: str                  # all prose outside fences


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_fingerprint(content: str | bytes) -> str:
    """sha256 hex digest of the full spec content, metadata header included."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def read_spec_bytes(path: str | Path) -> bytes:
    """Raw spec content, raising ``ParseFailure`` if it cannot be read."""
    path = Path(path)
    try:
        return path.read_bytes()
    except OSError as e:
        raise ParseFailure(f"Cannot read spec file {path}: {e}") from e


def decode_spec(data: bytes, path: str | Path = "<spec>") -> str:
    """Decode as UTF-8 without newline translation, so the text re-encodes to ``data``."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseFailure(f"Spec file {path} is not valid UTF-8: {e}") from e


def read_spec_text(path: str | Path) -> str:
    return decode_spec(read_spec_bytes(path), path)


def file_modified_time(path: str | Path) -> str | None:
    try:
        mtime = Path(path).stat().st_mtime
    except OSError:
        return None
    return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()


def load_spec(path: str | Path) -> ParsedSpec:
    """Read and parse a spec file, stamping the file's modification time."""
    text = read_spec_text(path)
    return parse_text(text, last_modified=file_modified_time(path))


def parse_text(text: str, last_modified: str | None = None) -> ParsedSpec:
    """Parse spec text into a ``ParsedSpec``.

    The parser is tolerant: headings that are missing, malformed front matter
    or odd markdown all fall back to defaults. The same text and timestamp
    always produce the same result.
    """
    front_matter, body = split_front_matter(text)
    doc = _split_sections(body)
    urls = extract_urls(text)

    metadata = SpecMetadata(
        title=str(front_matter.get("title") or doc.title or DEFAULT_TITLE),
        description=str(front_matter.get("description") or _first_sentence(doc.intro) or DEFAULT_DESCRIPTION),
        version=str(front_matter.get("version") or DEFAULT_VERSION),
        fingerprint=compute_fingerprint(text),
        length=len(text),
        last_modified=last_modified,
        extra={k: front_matter[k] for k in sorted(front_matter) if k not in ("title", "description", "version")},
    )

    editorial = _find_section(doc, "editorial_review")

    return ParsedSpec(
        metadata=metadata,
        goal=_parse_goal(doc, urls),
        sources=_parse_sources(urls),
        templates=_parse_templates(doc),
        file_generation=_parse_file_generation(doc),
        content_rules=ContentRulesSection(rules=apply_rule_table(doc.prose, CONTENT_RULE_PATTERNS)),
        navigation_rules=_parse_navigation(doc, urls),
        validation_rules=ValidationRulesSection(rules=apply_rule_table(doc.prose, VALIDATION_RULE_PATTERNS)),
        editorial_review=_parse_editorial_review(editorial) if editorial else None,
        section_keys=list(doc.sections),
    )


def validate_parsed_spec(parsed: ParsedSpec) -> list[str]:
    """Return a list of problems; an empty list means the spec looks sane."""
    errors: list[str] = []
    if not re.fullmatch(r"[0-9a-f]{64}", parsed.metadata.fingerprint):
        errors.append("Invalid sha256 fingerprint format")
    if not re.fullmatch(r"\d+\.\d+\.\d+", parsed.metadata.version):
        errors.append(f"Invalid version format (expected semver): {parsed.metadata.version}")
    for name in REQUIRED_SECTIONS:
        if not any(alias in parsed.section_keys for alias in SECTION_ALIASES[name]):
            errors.append(f"Missing section: {name}")
    return errors


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split a leading ``---`` YAML block from the body.

    A header that does not parse to a mapping is logged and ignored; the body
    after it is still returned.
    """
    m = _FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text
    body = text[m.end():]
    try:
        data = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        log.warning("Ignoring malformed metadata header: %s", e)
        return {}, body
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        log.warning("Ignoring metadata header: expected key/value pairs, got %s", type(data).__name__)
        return {}, body
    return {str(k): v for k, v in data.items()}, body


def normalize_title(title: str) -> str:
    """``"Sources of Truth!"`` -> ``"sources_of_truth"``."""
    cleaned = re.sub(r"[^a-z0-9\s]", "", title.lower()).strip()
    return re.sub(r"\s+", "_", cleaned) or "untitled"


def extract_urls(text: str) -> list[str]:
    """All URLs in ``text``, de-duplicated, in first-seen order."""
    seen: dict[str, None] = {}
    for raw in _URL_RE.findall(text):
        url = raw.rstrip(".,;:!?*_")
        if url:
            seen.setdefault(url, None)
    return list(seen)


def extract_workflow_steps(lines: list[str]) -> list[str]:
    """Numbered items if there are any, otherwise bullets; capped."""
    numbered = [m.group(1).strip() for m in (_NUMBERED_RE.match(l) for l in lines) if m]
    steps = numbered or [m.group(1).strip() for m in (_BULLET_RE.match(l) for l in lines) if m]
    return steps[:MAX_WORKFLOW_STEPS]


def apply_rule_table(text: str, table: RuleTable) -> dict[str, dict[str, Any]]:
    """Match keyword rules against ``text``; groups with no match are omitted."""
    rules: dict[str, dict[str, Any]] = {}
    for group, name, pattern, value in table:
        m = re.search(pattern, text, flags=re.IGNORECASE)
        if not m:
            continue
        resolved = value(m) if callable(value) else value
        if resolved in (None, [], ""):
            continue
        rules.setdefault(group, {})[name] = resolved
    return rules


def _split_sections(body: str) -> _Document:
    header = _Section(key="header", title="", level=0)
    sections: dict[str, _Section] = {"header": header}
    current = header
    title = ""
    intro: list[str] = []
    in_intro = True
    fence: str | None = None
    prose: list[str] = []

    for raw in body.splitlines():
        stripped = raw.strip()
        fence_match = _FENCE_RE.match(raw)
        if fence is not None:
            # Closed only by a bare fence of the same character, at least as long
            if (
                fence_match
                and fence_match.group(1)[0] == fence[0]
                and len(fence_match.group(1)) >= len(fence)
                and not fence_match.group(2).strip()
            ):
                fence = None
            continue
        if fence_match:
            fence = fence_match.group(1)
            continue

        # Four or more leading spaces is indented code, not a heading
        heading = _HEADING_RE.match(raw)
        if heading:
            level = len(heading.group(1))
            heading_title = heading.group(2).strip()
            if level == 1 and not title:
                title = heading_title
            if level >= 2:
                in_intro = False
            key = normalize_title(heading_title)
            # Repeated headings merge into the first section of that name
            current = sections.setdefault(key, _Section(key=key, title=heading_title, level=level))
            continue

        if stripped:
            current.prose.append(stripped)
            prose.append(stripped)
            if in_intro:
                intro.append(stripped)

    if not header.prose:
        del sections["header"]
    return _Document(sections=sections, title=title, intro=intro, prose="\n".join(prose))


def _find_section(doc: _Document, name: str) -> _Section | None:
    for alias in SECTION_ALIASES[name]:
        if alias in doc.sections:
            return doc.sections[alias]
    return None


def _first_sentence(lines: list[str], min_length: int = 20) -> str:
    for line in lines:
        if _NUMBERED_RE.match(line) or _BULLET_RE.match(line):
            continue
        if len(line) > min_length:
            return line
    return ""


def _list_items(lines: list[str]) -> list[str]:
    items = []
    for line in lines:
        m = _NUMBERED_RE.match(line) or _BULLET_RE.match(line)
        if m:
            items.append(m.group(1).strip())
    return items


def _repo_part(url: str) -> str:
    m = _REPO_PART_RE.match(url)
    return m.group(1).lower() if m else ""


def _file_name(url: str) -> str:
    return url.rstrip("/").rsplit("/", 1)[-1].lower()


def _is_hosted(url: str) -> bool:
    return any(marker in url for marker in HOSTING_MARKERS)


def _is_docs_repo(url: str) -> bool:
    return _is_hosted(url) and DOCS_MARKER in _repo_part(url)


def _name_from_url(url: str) -> str:
    name = url.rstrip("/").rsplit("/", 1)[-1]
    return name.rsplit(".", 1)[0] if "." in name else name


def _first(urls: list[str], predicate: Callable[[str], bool]) -> str:
    return next((u for u in urls if predicate(u)), "")


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def _parse_goal(doc: _Document, urls: list[str]) -> GoalSection:
    section = _find_section(doc, "goal")
    lines = section.prose if section else doc.intro
    return GoalSection(
        primary=_first_sentence(lines) or DEFAULT_GOAL,
        engineering_repo=RepositoryRef(
            url=_first(urls, lambda u: _is_hosted(u) and not _is_docs_repo(u)),
            description="Primary engineering repository",
        ),
        live_docs=RepositoryRef(
            url=_first(urls, lambda u: any(marker in u for marker in LIVE_DOCS_MARKERS)),
            description="Live documentation site",
        ),
        docs_repo=RepositoryRef(
            url=_first(urls, _is_docs_repo),
            description="Documentation repository",
        ),
        workflow=extract_workflow_steps(lines),
    )


def _parse_sources(urls: list[str]) -> SourcesSection:
    commands = _first(urls, lambda u: any(m in _file_name(u) for m in COMMANDS_MARKERS))
    examples = _first(
        urls,
        lambda u: u != commands and any(m in _file_name(u) for m in EXAMPLES_MARKERS),
    )
    tools_json = _first(urls, lambda u: _file_name(u) == TOOLS_JSON_MARKER)

    articles = [
        NamedReference(name=_name_from_url(u), url=u, purpose="Documentation article")
        for u in urls
        if _is_docs_repo(u) and u.lower().endswith(".md")
    ][:MAX_ARTICLES]
    navigation = [
        NamedReference(name=u.rsplit("/", 1)[-1], url=u, purpose="Navigation structure file")
        for u in urls
        if any(name in u for name in NAVIGATION_FILES)
    ]

    return SourcesSection(
        commands=SourceReference(url=commands, format="Markdown documentation", purpose="Command definitions"),
        examples=SourceReference(url=examples, format="Test prompts", purpose="Usage examples"),
        tools_json=SourceReference(url=tools_json, format="JSON", purpose="Structured tool definitions"),
        articles=articles,
        navigation=navigation,
    )


def _template_role(name: str) -> str:
    lower = name.lower()
    if any(marker in lower for marker in PRIMARY_TEMPLATE_MARKERS):
        return "primary"
    if any(marker in lower for marker in PARTIAL_TEMPLATE_MARKERS):
        return "partial"
    return lower[:-3] if lower.endswith(".md") else lower


def _parse_templates(doc: _Document) -> TemplatesSection:
    names: dict[str, None] = {}
    for m in _TEMPLATE_RE.finditer(doc.prose):
        names.setdefault(m.group(1).rsplit("/", 1)[-1], None)

    if names:
        files = [
            TemplateInfo(name=n[:-3], file=n, role=_template_role(n), purpose=f"Template file: {n}")
            for n in names
        ]
    else:
        files = [
            TemplateInfo(name=n[:-3], file=n, role=role, purpose=f"Default {role} template")
            for n, role in DEFAULT_TEMPLATES
        ]
    return TemplatesSection(
        files=files,
        usage="Templates provide consistent structure and formatting for generated documentation",
    )


def _parse_file_generation(doc: _Document) -> FileGenerationSection:
    section = _find_section(doc, "file_generation")
    text = doc.prose

    base = _BASE_DIR_RE.search(text)
    subdirectories: list[str] = []
    for m in _SUBDIR_RE.finditer(text):
        purpose = m.group(1).lower()
        for name, marker in (("content", "content"), ("source-of-truth", "source"), ("logs", "log")):
            if marker in purpose and name not in subdirectories:
                subdirectories.append(name)

    content: list[str] = []
    source_of_truth: list[str] = []
    logs: list[str] = []
    for m in _OUTPUT_FILE_RE.finditer(text):
        name = m.group(1)
        if "template" in name.lower():
            continue
        ext = name.rsplit(".", 1)[-1].lower()
        bucket = source_of_truth if ext == "json" else logs if ext in ("log", "txt") else content
        if name not in bucket:
            bucket.append(name)

    return FileGenerationSection(
        base_directory=base.group(1) if base else "./generated/",
        timestamp_format=TIMESTAMP_FORMAT if _TIMESTAMP_RE.search(text) else None,
        subdirectories=subdirectories,
        workflow=extract_workflow_steps(section.prose) if section else [],
        content_files=content,
        source_of_truth_files=source_of_truth,
        log_files=logs,
    )


def _parse_navigation(doc: _Document, urls: list[str]) -> NavigationRulesSection:
    section = _find_section(doc, "navigation_rules")
    files = []
    for name in NAVIGATION_FILES:
        url = _first(urls, lambda u: name in u) or f"./{name}"
        files.append(NamedReference(name=name, url=url))

    max_tools = re.search(r"more than (\d+) individual tools", doc.prose, flags=re.IGNORECASE)
    ordering = ""
    if section:
        ordering = next((line for line in section.prose if "order" in line.lower()), "")
    return NavigationRulesSection(
        files=files,
        landing_page_max_tools=int(max_tools.group(1)) if max_tools else DEFAULT_LANDING_PAGE_MAX_TOOLS,
        ordering=ordering or DEFAULT_NAVIGATION_ORDERING,
    )


def _parse_editorial_review(section: _Section) -> EditorialReviewSection:
    criteria = _list_items(section.prose)[:MAX_REVIEW_CRITERIA]
    return EditorialReviewSection(
        process=_first_sentence(section.prose, min_length=0) or DEFAULT_REVIEW_PROCESS,
        criteria=criteria or list(DEFAULT_REVIEW_CRITERIA),
    )
