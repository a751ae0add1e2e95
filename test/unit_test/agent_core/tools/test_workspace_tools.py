from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from codesmith_ai.agent_core.errors import ToolInputValidationError, ToolPermissionDeniedError, ToolRuntimeError
from codesmith_ai.agent_core.policy import PermissionPolicy
from codesmith_ai.agent_core.tools import ToolExecutor, ToolRegistry
from codesmith_ai.agent_core.tools.builtin import WorkspacePathError, register_workspace_tools
from codesmith_ai.agent_core.tools.builtin.definitions import ApplyWorkspaceEditInput
from codesmith_ai.agent_core.tools.builtin.workspace import (
    ApplyWorkspaceEditHandler,
    WorkspaceOperationStopped,
    WorkspaceToolHandler,
)
from codesmith_ai.agent_core.tracing import TraceRecorder
from codesmith_ai.agent_core.validation import SchemaValidator


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("def main():\n    return 'hello'\n", encoding="utf-8")
    (tmp_path / "src" / "util.py").write_text("HELLO = 1\n", encoding="utf-8")
    (tmp_path / "README.md").write_text("# Demo\nSay hello.\n", encoding="utf-8")
    (tmp_path / ".hidden").write_text("secret\n", encoding="utf-8")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("hello\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def executor(workspace: Path, event_bus) -> ToolExecutor:
    registry = ToolRegistry()
    register_workspace_tools(registry, workspace)
    return ToolExecutor(
        registry, SchemaValidator(event_bus), TraceRecorder(event_bus), event_bus, PermissionPolicy.allow_all()
    )


def test_register_workspace_tools_names(workspace: Path) -> None:
    registry = ToolRegistry()
    names = register_workspace_tools(registry, workspace)

    assert set(names) == {
        "filesystem.getWorkspaceFiles",
        "filesystem.getFileContents",
        "filesystem.writeFile",
        "project.searchWorkspace",
        "project.getProjectInfo",
        "codeManipulation.applyWorkspaceEdit",
    }
    assert registry.names() == sorted(names)


@pytest.mark.asyncio
async def test_get_workspace_files_skips_hidden_and_ignored(executor: ToolExecutor) -> None:
    out = await executor.execute("filesystem.getWorkspaceFiles", {})

    assert out.files == ["README.md", "src/app.py", "src/util.py"]
    assert out.truncated is False


@pytest.mark.asyncio
async def test_get_workspace_files_pattern_and_limit(executor: ToolExecutor) -> None:
    out = await executor.execute("filesystem.getWorkspaceFiles", {"pattern": "**/*.py", "max_results": 1})

    assert out.files == ["src/app.py"]
    assert out.truncated is True


@pytest.mark.asyncio
async def test_get_file_contents(executor: ToolExecutor) -> None:
    out = await executor.execute("filesystem.getFileContents", {"file_path": "src/app.py"})

    assert out.file_path == "src/app.py"
    assert out.content.startswith("def main")
    assert out.line_count == 2


@pytest.mark.asyncio
async def test_get_file_contents_missing_file_is_runtime_error(executor: ToolExecutor) -> None:
    with pytest.raises(ToolRuntimeError) as ei:
        await executor.execute("filesystem.getFileContents", {"file_path": "nope.py"})
    assert isinstance(ei.value.cause, FileNotFoundError)


@pytest.mark.asyncio
async def test_paths_outside_workspace_are_refused(executor: ToolExecutor) -> None:
    with pytest.raises(ToolRuntimeError) as ei:
        await executor.execute("filesystem.getFileContents", {"file_path": "../outside.txt"})
    assert isinstance(ei.value.cause, WorkspacePathError)


@pytest.mark.asyncio
async def test_write_file_creates_and_respects_overwrite(executor: ToolExecutor, workspace: Path) -> None:
    out = await executor.execute("filesystem.writeFile", {"file_path": "new/dir/file.txt", "content": "abc"})

    assert out.created is True
    assert out.bytes_written == 3
    assert (workspace / "new" / "dir" / "file.txt").read_text(encoding="utf-8") == "abc"

    with pytest.raises(ToolRuntimeError):
        await executor.execute(
            "filesystem.writeFile", {"file_path": "new/dir/file.txt", "content": "x", "overwrite": False}
        )


@pytest.mark.asyncio
async def test_search_workspace_case_insensitive_by_default(executor: ToolExecutor) -> None:
    out = await executor.execute("project.searchWorkspace", {"query": "hello"})

    found = {(m.file_path, m.line_number) for m in out.results}
    assert found == {("README.md", 2), ("src/app.py", 2), ("src/util.py", 1)}


@pytest.mark.asyncio
async def test_search_workspace_options(executor: ToolExecutor) -> None:
    out = await executor.execute(
        "project.searchWorkspace",
        {"query": "HELLO", "is_case_sensitive": True, "include_pattern": "**/*.py"},
    )
    assert [(m.file_path, m.match_text) for m in out.results] == [("src/util.py", "HELLO")]

    regex = await executor.execute("project.searchWorkspace", {"query": r"def \w+", "is_regexp": True})
    assert [m.match_text for m in regex.results] == ["def main"]


@pytest.mark.asyncio
async def test_search_workspace_rejects_empty_query(executor: ToolExecutor) -> None:
    with pytest.raises(ToolInputValidationError):
        await executor.execute("project.searchWorkspace", {"query": ""})


@pytest.mark.asyncio
async def test_project_info(executor: ToolExecutor, workspace: Path) -> None:
    (workspace / "pyproject.toml").write_text('[project]\nname = "demo-app"\n', encoding="utf-8")
    (workspace / ".git").mkdir()
    (workspace / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")

    out = await executor.execute("project.getProjectInfo", {})

    assert out.name == "demo-app"
    assert out.manifest == "pyproject.toml"
    assert out.git.has_git is True
    assert out.git.current_branch == "main"
    assert out.file_stats.by_extension["py"] == 2
    assert out.file_stats.total_files == 4


@pytest.mark.asyncio
async def test_project_info_falls_back_to_directory_name(executor: ToolExecutor, workspace: Path) -> None:
    out = await executor.execute("project.getProjectInfo", {})

    assert out.name == workspace.name
    assert out.manifest is None
    assert out.git.has_git is False


@pytest.mark.asyncio
async def test_apply_workspace_edit_replace_and_insert(executor: ToolExecutor, workspace: Path) -> None:
    out = await executor.execute(
        "codeManipulation.applyWorkspaceEdit",
        {
            "edits": [
                {"file_path": "src/app.py", "start_line": 2, "end_line": 2, "new_text": "    return 'bye'"},
                {"file_path": "src/app.py", "start_line": 1, "new_text": "import os\n"},
            ]
        },
    )

    assert out.files_changed == ["src/app.py"]
    assert out.edits_applied == 2
    assert (workspace / "src" / "app.py").read_text(encoding="utf-8") == "import os\ndef main():\n    return 'bye'\n"


@pytest.mark.asyncio
async def test_apply_workspace_edit_is_all_or_nothing(executor: ToolExecutor, workspace: Path) -> None:
    before = (workspace / "src" / "util.py").read_text(encoding="utf-8")

    with pytest.raises(ToolRuntimeError):
        await executor.execute(
            "codeManipulation.applyWorkspaceEdit",
            {
                "edits": [
                    {"file_path": "src/util.py", "start_line": 1, "end_line": 1, "new_text": "HELLO = 2"},
                    {"file_path": "src/app.py", "start_line": 10, "end_line": 12, "new_text": "x"},
                ]
            },
        )

    assert (workspace / "src" / "util.py").read_text(encoding="utf-8") == before


@pytest.mark.asyncio
async def test_apply_workspace_edit_rejects_inverted_range(executor: ToolExecutor) -> None:
    with pytest.raises(ToolInputValidationError):
        await executor.execute(
            "codeManipulation.applyWorkspaceEdit",
            {"edits": [{"file_path": "src/app.py", "start_line": 3, "end_line": 1}]},
        )


def test_builtin_tools_declare_permissions(workspace: Path) -> None:
    registry = ToolRegistry()
    register_workspace_tools(registry, workspace)

    assert registry.get("filesystem.getFileContents").required_permissions == ("filesystem.read",)
    assert registry.get("project.getProjectInfo").required_permissions == ("workspace.info.read",)
    assert registry.get("filesystem.writeFile").required_permissions == ("filesystem.write",)
    assert registry.get("codeManipulation.applyWorkspaceEdit").required_permissions == ("filesystem.write",)


@pytest.mark.asyncio
async def test_default_policy_refuses_unconfirmed_writes(workspace: Path, event_bus) -> None:
    registry = ToolRegistry()
    register_workspace_tools(registry, workspace)
    executor = ToolExecutor(registry, SchemaValidator(event_bus), TraceRecorder(event_bus), event_bus)

    read = await executor.execute("filesystem.getFileContents", {"file_path": "src/app.py"})
    assert read.line_count == 2

    with pytest.raises(ToolPermissionDeniedError):
        await executor.execute("filesystem.writeFile", {"file_path": "blocked.txt", "content": "x"})
    assert not (workspace / "blocked.txt").exists()


@pytest.mark.asyncio
async def test_cancelled_search_frees_loop_and_stops_worker(
    executor: ToolExecutor, monkeypatch: pytest.MonkeyPatch
) -> None:
    entered = threading.Event()
    gate = threading.Event()
    seen_stop = []
    original = WorkspaceToolHandler.iter_files

    def blocking_iter_files(self, start, include_hidden=False, stop=None):
        entered.set()
        gate.wait(timeout=5)
        seen_stop.append(stop is not None and stop.is_set())
        yield from original(self, start, include_hidden, stop)

    monkeypatch.setattr(WorkspaceToolHandler, "iter_files", blocking_iter_files)

    task = asyncio.create_task(executor.execute("project.searchWorkspace", {"query": "hello"}))
    # the loop keeps running while the worker thread is blocked
    for _ in range(500):
        if entered.is_set():
            break
        await asyncio.sleep(0.01)
    assert entered.is_set()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    gate.set()
    for _ in range(500):
        if seen_stop:
            break
        await asyncio.sleep(0.01)
    assert seen_stop == [True]


def test_stopped_edit_writes_nothing(workspace: Path) -> None:
    before = (workspace / "src" / "app.py").read_text(encoding="utf-8")
    stop = threading.Event()
    stop.set()
    edit = ApplyWorkspaceEditInput(
        edits=[{"file_path": "src/app.py", "start_line": 1, "end_line": 1, "new_text": "pass"}]
    )

    with pytest.raises(WorkspaceOperationStopped):
        ApplyWorkspaceEditHandler(workspace).run(edit, stop)

    assert (workspace / "src" / "app.py").read_text(encoding="utf-8") == before
