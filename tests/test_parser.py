import pytest

from specsync.parser import (
    DEFAULT_GOAL,
    ParseFailure,
    compute_fingerprint,
    extract_urls,
    extract_workflow_steps,
    load_spec,
    normalize_title,
    parse_text,
    read_spec_bytes,
    split_front_matter,
    validate_parsed_spec,
)

from conftest import COMMANDS_URL, EXAMPLES_URL, TOOLS_JSON_URL


def test_parse_is_deterministic(spec_text):
    first = parse_text(spec_text, last_modified="2025-01-31T12:00:00+00:00")
    second = parse_text(spec_text, last_modified="2025-01-31T12:00:00+00:00")
    assert first.model_dump_json() == second.model_dump_json()
    assert first.metadata.fingerprint == compute_fingerprint(spec_text)


def test_metadata(spec_text):
    meta = parse_text(spec_text).metadata
    assert meta.title == "Docs Generation Spec"
    assert meta.version == "2.1.0"
    assert meta.description == "Generate reference docs for every tool in the server."
    assert meta.length == len(spec_text)
    assert meta.extra == {"owner": "docs-team"}


def test_goal_and_repositories(spec_text):
    goal = parse_text(spec_text).goal
    assert goal.primary == "Keep the published tool reference in sync with the engineering repo."
    assert goal.workflow == [
        "Read the commands reference",
        "Generate one file per tool",
        "Send the output for editorial review",
    ]
    assert goal.engineering_repo.url == "https://github.com/example/tool-server"
    assert goal.live_docs.url == "https://learn.microsoft.com/example/tools/"
    assert goal.docs_repo.url == "https://github.com/ExampleDocs/tool-docs"


def test_tracked_config(spec_text):
    tracked = parse_text(spec_text).tracked_config()
    assert tracked["sources"] == {
        "commands": COMMANDS_URL,
        "examples": EXAMPLES_URL,
        "tools-json": TOOLS_JSON_URL,
    }
    assert tracked["content-rules"] == {
        "example-prompts": {"count": 5, "variety": ["question", "statement", "incomplete", "verbose"]},
        "parameters": {"format": "Required or Optional"},
        "headers": {"case": "sentence"},
        "links": {"type": "relative"},
    }
    assert tracked["validation-rules"] == {
        "content": {"max-landing-page-tools": 4},
        "structure": {"h3-avoid": ["Parameters", "Example prompts"]},
    }
    assert tracked["output-structure"] == {
        "base-directory": "./generated/",
        "timestamp-format": "YYYY-MM-DD_HH-mm-ss",
        "directories": ["content", "logs"],
        "files": {"content": ["index.yml"], "source-of-truth": ["tools.json"]},
    }
    assert tracked["templates"] == {"partial": "new.template.md"}


def test_tracked_config_without_templates(spec_text):
    assert "templates" not in parse_text(spec_text).tracked_config(include_templates=False)


def test_fenced_heading_is_not_a_section(spec_text):
    parsed = parse_text(spec_text)
    assert "not_a_heading" not in parsed.section_keys
    assert parsed.section_keys[:2] == ["docs_generation_spec", "goal"]


def test_dropped_rule_group_is_omitted(spec_text):
    text = spec_text.replace("Use sentence case for headers.\n", "")
    assert "headers" not in parse_text(text).tracked_config()["content-rules"]


def test_empty_text_uses_defaults():
    parsed = parse_text("")
    assert parsed.goal.primary == DEFAULT_GOAL
    assert parsed.file_generation.base_directory == "./generated/"
    assert [t.role for t in parsed.templates.files] == ["primary", "partial"]
    assert parsed.editorial_review is None
    assert validate_parsed_spec(parsed) == ["Missing section: goal", "Missing section: sources"]


def test_validate_parsed_spec(spec_text):
    assert validate_parsed_spec(parse_text(spec_text)) == []
    bad = parse_text(spec_text.replace("version: 2.1.0", "version: two"))
    assert validate_parsed_spec(bad) == ["Invalid version format (expected semver): two"]


def test_malformed_front_matter_is_ignored():
    meta, body = split_front_matter("---\ntitle: [unclosed\n---\n# Title\n")
    assert meta == {}
    assert body == "# Title\n"
    assert parse_text("---\ntitle: [unclosed\n---\n# Title\n").metadata.title == "Title"


def test_editorial_review_section():
    text = "# Spec\n\n## Editorial review\n\nA reviewer signs off each batch.\n\n- Accuracy\n- Tone\n"
    review = parse_text(text).editorial_review
    assert review.process == "A reviewer signs off each batch."
    assert review.criteria == ["Accuracy", "Tone"]


def test_normalize_title():
    assert normalize_title("Sources of Truth!") == "sources_of_truth"
    assert normalize_title("  Content   Arrangement & File Generation ") == "content_arrangement_file_generation"
    assert normalize_title("???") == "untitled"


def test_extract_urls_dedupes_and_strips_punctuation():
    text = "See https://a.example/x. Also https://a.example/x and (https://b.example/y)."
    assert extract_urls(text) == ["https://a.example/x", "https://b.example/y"]


def test_workflow_steps_prefer_numbered_and_cap():
    assert extract_workflow_steps(["- bullet", "1. first", "2) second"]) == ["first", "second"]
    assert extract_workflow_steps(["- a", "* b", "plain"]) == ["a", "b"]
    assert len(extract_workflow_steps([f"{i}. step" for i in range(1, 15)])) == 10


def test_load_spec_stamps_modified_time(spec_file):
    parsed = load_spec(spec_file)
    assert parsed.metadata.last_modified is not None


def test_missing_spec_raises(tmp_path):
    with pytest.raises(ParseFailure):
        load_spec(tmp_path / "nope.md")


def test_invalid_utf8_raises(tmp_path):
    path = tmp_path / "broken.md"
    path.write_bytes(b"# T\n\xff\xfe broken \x80\n")
    with pytest.raises(ParseFailure):
        load_spec(path)


def test_read_keeps_line_endings(tmp_path, spec_text):
    raw = spec_text.replace("\n", "\r\n").encode("utf-8")
    path = tmp_path / "crlf.md"
    path.write_bytes(raw)
    assert compute_fingerprint(read_spec_bytes(path)) == compute_fingerprint(raw)
    assert load_spec(path).metadata.fingerprint == compute_fingerprint(raw)
    assert load_spec(path).tracked_config() == parse_text(spec_text).tracked_config()


def test_indented_code_is_not_a_heading():
    text = "# Spec\n\n## Goal\n\nKeep the tool reference current.\n\n    # not a heading\n   ## Sources\n"
    keys = parse_text(text).section_keys
    assert "not_a_heading" not in keys
    assert keys == ["spec", "goal", "sources"]


def test_fence_closes_only_on_matching_length():
    text = "# Spec\n\n````markdown\n```\n## Inside\n```\n````\n\n## After\n"
    keys = parse_text(text).section_keys
    assert "inside" not in keys
    assert keys == ["spec", "after"]


def test_closing_heading_hashes_are_dropped():
    assert parse_text("# Spec\n\n## Goal ##\n\n## C#\n").section_keys == ["spec", "goal", "c"]
