"""Tests for the edit tool drivers."""

from pathlib import Path

import pytest

from patchkit.config import EngineSettings
from patchkit.engine.models import V4ASearchMode
from patchkit.tools.contract import (
    ApplyV4APatchParams,
    SearchReplaceParams,
    ToolStatus,
    parse_tool_request,
)
from patchkit.tools.editing import apply_v4a_patch_tool, run_tool, search_replace_tool
from patchkit.util.events import EventLogger
from patchkit.util.jsonl import read_jsonl

GO_FILE = "package main\n\nfunc ProcessRequest() error {\n    return nil\n}"

GO_PATCH = "@@ func ProcessRequest\n-    return nil\n+    return processData(req)"

EXPECTED_GO = "package main\n\nfunc ProcessRequest() error {\n    return processData(req)\n}"

SR_DIFF = """\
------- SEARCH
    return nil
=======
    return processData(req)
+++++++ REPLACE
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "main.go").write_text(GO_FILE, encoding="utf-8")
    return tmp_path


class TestApplyV4APatchTool:
    """Tests for apply_v4a_patch_tool."""

    def test_success(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="main.go", patch=GO_PATCH),
            request_id="req-1",
        )

        assert result.status == ToolStatus.SUCCESS
        assert result.message == "Successfully applied 1 hunk(s) to main.go"
        assert result.data["hunks_applied"] == 1
        assert (workspace / "main.go").read_text(encoding="utf-8") == EXPECTED_GO

    def test_dry_run_does_not_write(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="main.go", patch=GO_PATCH, dry_run=True),
            request_id="req-1",
        )

        assert result.success
        assert "=== DRY RUN ===" in result.message
        assert "return processData(req)" in result.message
        assert (workspace / "main.go").read_text(encoding="utf-8") == GO_FILE

    def test_header_path_used_when_path_empty(self, workspace: Path):
        patch = "*** Update File: main.go\n" + GO_PATCH

        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(patch=patch),
            request_id="req-1",
        )

        assert result.success
        assert result.data["path"] == "main.go"

    def test_missing_path(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(patch=GO_PATCH),
            request_id="req-1",
        )

        assert result.status == ToolStatus.ERROR
        assert result.error.error_type == "missing_path"

    def test_empty_patch(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="main.go", patch="just some text"),
            request_id="req-1",
        )

        assert result.error.error_type == "empty_patch"
        assert result.error.message.startswith("Failed to parse V4A patch")

    def test_context_not_found(self, workspace: Path):
        patch = "@@ func Missing\n-    return nil\n+    return 1"

        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="main.go", patch=patch),
            request_id="req-1",
        )

        assert result.error.error_type == "context_not_found"
        assert result.error.message.startswith("Failed to apply V4A patch")
        assert result.error.details["marker"] == "func Missing"
        assert (workspace / "main.go").read_text(encoding="utf-8") == GO_FILE

    def test_path_escape(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="../outside.go", patch=GO_PATCH),
            request_id="req-1",
        )

        assert result.error.error_type == "path_escape"

    def test_missing_file_is_io_error(self, workspace: Path):
        result = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="nope.go", patch=GO_PATCH),
            request_id="req-1",
        )

        assert result.error.error_type == "io_error"

    def test_search_mode_from_settings(self, workspace: Path):
        (workspace / "funcs.py").write_text(
            "def a():\n    return 1\ndef b():\n    return 1\n", encoding="utf-8"
        )
        patch = "@@ def b\n-    return 1\n+    return 2\n@@ def a\n-    return 1\n+    return 3\n"

        restart = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="funcs.py", patch=patch, dry_run=True),
            request_id="req-1",
        )
        cont = apply_v4a_patch_tool(
            workspace,
            ApplyV4APatchParams(path="funcs.py", patch=patch, dry_run=True),
            request_id="req-2",
            settings=EngineSettings(v4a_search_mode=V4ASearchMode.CONTINUE),
        )

        assert restart.success
        assert cont.error.error_type == "context_not_found"


class TestSearchReplaceTool:
    """Tests for search_replace_tool."""

    def test_success(self, workspace: Path):
        result = search_replace_tool(
            workspace,
            SearchReplaceParams(path="main.go", diff=SR_DIFF),
            request_id="req-1",
        )

        assert result.success
        assert result.message == "Successfully applied 1 SEARCH/REPLACE block(s) to main.go"
        assert result.data["changes"] == 1
        assert result.data["match_strategies"] == ["exact"]
        assert (workspace / "main.go").read_text(encoding="utf-8") == EXPECTED_GO

    def test_preview_does_not_write(self, workspace: Path):
        result = search_replace_tool(
            workspace,
            SearchReplaceParams(path="main.go", diff=SR_DIFF, preview=True),
            request_id="req-1",
        )

        assert result.success
        output = result.to_output()
        assert output.message.startswith("Preview: 1 blocks would be applied")
        assert "Block 1 (match at offset 44, exact):" in output.message
        assert "    return nil" in output.message
        assert "    return processData(req)" in output.message
        assert "Would apply 1 SEARCH/REPLACE blocks to main.go:" in result.data["preview_content"]
        assert (workspace / "main.go").read_text(encoding="utf-8") == GO_FILE

    def test_no_blocks(self, workspace: Path):
        result = search_replace_tool(
            workspace,
            SearchReplaceParams(path="main.go", diff="no markers here"),
            request_id="req-1",
        )

        assert result.error.error_type == "no_blocks_found"
        assert result.error.message.startswith("Failed to parse SEARCH/REPLACE blocks")
        assert result.to_output().error.startswith("no_blocks_found: ")

    def test_second_block_not_found_leaves_file_untouched(self, workspace: Path):
        diff = SR_DIFF + (
            "------- SEARCH\n"
            "func Missing()\n"
            "=======\n"
            "func Found()\n"
            "+++++++ REPLACE\n"
        )

        result = search_replace_tool(
            workspace,
            SearchReplaceParams(path="main.go", diff=diff),
            request_id="req-1",
        )

        assert result.error.error_type == "search_not_found"
        assert result.error.message.startswith("Failed to apply blocks")
        assert result.data["total_blocks"] == 2
        assert result.data["blocks_applied"] == 1
        assert (workspace / "main.go").read_text(encoding="utf-8") == GO_FILE


class TestRunTool:
    """Tests for request dispatch and event logging."""

    def test_dispatch_and_events(self, workspace: Path, tmp_path: Path):
        events_file = tmp_path / "logs" / "events.jsonl"
        event_logger = EventLogger(events_file, run_id="01TEST")
        request = parse_tool_request(
            {
                "tool": "search_replace",
                "request_id": "req-9",
                "params": {"path": "main.go", "diff": SR_DIFF},
            }
        )

        result = run_tool(workspace, request, event_logger=event_logger)

        assert result.success
        records = list(read_jsonl(events_file))
        assert [r["event_type"] for r in records] == ["tool_call_started", "patch_applied"]
        assert records[1]["payload"]["request_id"] == "req-9"

    def test_failed_call_logs_patch_failed(self, workspace: Path, tmp_path: Path):
        events_file = tmp_path / "events.jsonl"
        request = parse_tool_request(
            {
                "tool": "apply_v4a_patch",
                "request_id": "req-3",
                "params": {"path": "main.go", "patch": "@@ nowhere\n-x\n+y"},
            }
        )

        result = run_tool(workspace, request, event_logger=EventLogger(events_file))

        assert not result.success
        records = list(read_jsonl(events_file))
        assert records[-1]["event_type"] == "patch_failed"
        assert records[-1]["payload"]["error"]["error_type"] == "context_not_found"

    def test_dry_run_logs_finished(self, workspace: Path, tmp_path: Path):
        events_file = tmp_path / "events.jsonl"
        request = parse_tool_request(
            {
                "tool": "apply_v4a_patch",
                "request_id": "req-4",
                "params": {"path": "main.go", "patch": GO_PATCH, "dry_run": True},
            }
        )

        run_tool(workspace, request, event_logger=EventLogger(events_file))

        records = list(read_jsonl(events_file))
        assert records[-1]["event_type"] == "tool_call_finished"
