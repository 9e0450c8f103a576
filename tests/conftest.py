import pytest

from specsync.history import MemoryHistoryStore
from specsync.snapshot import MemorySnapshotStore

SPEC_TEXT = """---
title: Docs Generation Spec
version: 2.1.0
owner: docs-team
---
# Docs Generation Spec

Generate reference docs for every tool in the server.

## Goal

Keep the published tool reference in sync with the engineering repo.

1. Read the commands reference
2. Generate one file per tool
3. Send the output for editorial review

Engineering repo: https://github.com/example/tool-server
Live docs: https://learn.microsoft.com/example/tools/
Docs repo: https://github.com/ExampleDocs/tool-docs

## Sources of truth

- https://github.com/example/tool-server/blob/main/docs/commands.md
- https://github.com/example/tool-server/blob/main/tests/e2e-prompts.md
- https://github.com/example/tool-server/blob/main/tools.json

## Content rules

Provide 5 example prompts per operation with a variety of questions, statements and incomplete requests.
Mark each parameter as Required or optional.
Use sentence case for headers.
Links must be relative and not absolute.

## Validation

Flag landing pages that list more than 4 individual tools.
No H3 headings for "Parameters" or "Example prompts".

## File generation

Write everything under `./generated/` using a timestamp like 2025-01-31_12-00-00.

- `./generated/content` - generated content files
- `./generated/logs` - processing logs

Use `new.template.md` for new tools and keep `tools.json` plus `index.yml` as outputs.

```text
## Not a heading
```
"""

COMMANDS_URL = "https://github.com/example/tool-server/blob/main/docs/commands.md"
EXAMPLES_URL = "https://github.com/example/tool-server/blob/main/tests/e2e-prompts.md"
TOOLS_JSON_URL = "https://github.com/example/tool-server/blob/main/tools.json"


@pytest.fixture
def spec_text():
    return SPEC_TEXT


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / "docs-spec.md"
    path.write_bytes(SPEC_TEXT.encode("utf-8"))
    return path


@pytest.fixture
def history():
    return MemoryHistoryStore()


@pytest.fixture
def snapshots():
    return MemorySnapshotStore()
