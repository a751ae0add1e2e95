"""Builtin workspace tools.

Handlers for file listing, reading, writing, text search, project inspection
and line edits, all confined to a single workspace root. A path that resolves
outside the root raises ``WorkspacePathError``; handlers raise on any I/O
failure and the ``ToolExecutor`` turns that into a ``ToolRuntimeError``.

The blocking filesystem work runs in a worker thread so the event loop stays
responsive. Cancelling the awaiting task sets a stop flag that the walkers
check between files; a cancelled write or edit stops before touching disk.
"""

import asyncio
import json
import os
import re
import threading
import tomllib
from abc import ABC, abstractmethod
from collections import Counter
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

from codesmith_ai.core.logging_config import get_logger

from ..base import ToolDefinition
from ..registry import ToolRegistry
from .definitions import (
    APPLY_WORKSPACE_EDIT,
    DESCRIPTIONS,
    PERMISSIONS,
    GET_FILE_CONTENTS,
    GET_PROJECT_INFO,
    LIST_FILES,
    SEARCH_WORKSPACE,
    WRITE_FILE,
    ApplyWorkspaceEditInput,
    ApplyWorkspaceEditOutput,
    FileContentsInput,
    FileContentsOutput,
    FileStats,
    GitInfo,
    ListFilesInput,
    ListFilesOutput,
    ProjectInfoInput,
    ProjectInfoOutput,
    SearchMatch,
    SearchWorkspaceInput,
    SearchWorkspaceOutput,
    TextEdit,
    WriteFileInput,
    WriteFileOutput,
)

logger = get_logger(__name__)

InputType = TypeVar("InputType")
OutputType = TypeVar("OutputType")

IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"})


class WorkspacePathError(ValueError):
    """Raised when a path escapes the workspace root."""


class WorkspaceOperationStopped(RuntimeError):
    """The awaiting task was cancelled before the operation could finish."""


class ToolHandler(ABC, Generic[InputType, OutputType]):
    """Abstract base class for tool handlers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""

    @abstractmethod
    async def execute(self, input_data: InputType) -> OutputType:
        """Execute the tool operation."""

    async def __call__(self, input_data: InputType) -> OutputType:
        return await self.execute(input_data)


class WorkspaceToolHandler(ToolHandler[InputType, OutputType], ABC):
    """Base for handlers operating inside a workspace root.

    Subclasses implement the synchronous ``run``; ``execute`` moves it to a
    worker thread and signals ``stop`` when the awaiting task is cancelled.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()

    @abstractmethod
    def run(self, input_data: InputType, stop: threading.Event) -> OutputType:
        """Do the blocking work, returning early once ``stop`` is set."""

    async def execute(self, input_data: InputType) -> OutputType:
        stop = threading.Event()
        try:
            return await asyncio.to_thread(self.run, input_data, stop)
        except asyncio.CancelledError:
            stop.set()
            logger.info(f"Tool '{self.name}' cancelled; worker thread told to stop")
            raise

    @staticmethod
    def check_stop(stop: threading.Event) -> None:
        if stop.is_set():
            raise WorkspaceOperationStopped("Operation stopped before completion")

    def resolve(self, relative: str) -> Path:
        """Resolve ``relative`` against the root, refusing paths outside it."""
        candidate = Path(relative)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        resolved = candidate.resolve()
        if resolved != self.root and self.root not in resolved.parents:
            raise WorkspacePathError(f"Path escapes the workspace root: {relative}")
        return resolved

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def iter_files(
        self, start: Path, include_hidden: bool = False, stop: Optional[threading.Event] = None
    ) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(start):
            if stop is not None and stop.is_set():
                return
            dirnames[:] = sorted(
                d for d in dirnames if d not in IGNORED_DIRS and (include_hidden or not d.startswith("."))
            )
            for fname in sorted(filenames):
                if stop is not None and stop.is_set():
                    return
                if include_hidden or not fname.startswith("."):
                    yield Path(dirpath) / fname


def _glob_match(rel_path: str, pattern: str) -> bool:
    if fnmatch(rel_path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch(rel_path, pattern[3:])


class ListFilesHandler(WorkspaceToolHandler[ListFilesInput, ListFilesOutput]):
    @property
    def name(self) -> str:
        return LIST_FILES

    def run(self, input_data: ListFilesInput, stop: threading.Event) -> ListFilesOutput:
        start = self.resolve(input_data.path)
        if not start.is_dir():
            raise NotADirectoryError(f"Not a directory: {input_data.path}")

        files: List[str] = []
        truncated = False
        for path in self.iter_files(start, input_data.include_hidden, stop):
            rel = self.relative(path)
            if not _glob_match(rel, input_data.pattern):
                continue
            if len(files) >= input_data.max_results:
                truncated = True
                break
            files.append(rel)

        logger.info(f"Listed {len(files)} files under {start}")
        return ListFilesOutput(root=self.relative(start) or ".", files=files, truncated=truncated)


class FileContentsHandler(WorkspaceToolHandler[FileContentsInput, FileContentsOutput]):
    @property
    def name(self) -> str:
        return GET_FILE_CONTENTS

    def run(self, input_data: FileContentsInput, stop: threading.Event) -> FileContentsOutput:
        file_path = self.resolve(input_data.file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {input_data.file_path}")
        if not file_path.is_file():
            raise IsADirectoryError(f"Path is not a file: {input_data.file_path}")

        content = file_path.read_text(encoding=input_data.encoding)
        size_bytes = file_path.stat().st_size
        logger.info(f"Successfully read file: {file_path} ({size_bytes} bytes)")
        return FileContentsOutput(
            file_path=self.relative(file_path),
            content=content,
            size_bytes=size_bytes,
            line_count=len(content.splitlines()),
        )


class WriteFileHandler(WorkspaceToolHandler[WriteFileInput, WriteFileOutput]):
    @property
    def name(self) -> str:
        return WRITE_FILE

    def run(self, input_data: WriteFileInput, stop: threading.Event) -> WriteFileOutput:
        file_path = self.resolve(input_data.file_path)
        existed = file_path.exists()
        if existed and not input_data.overwrite:
            raise FileExistsError(f"File already exists: {input_data.file_path}")
        if existed and not file_path.is_file():
            raise IsADirectoryError(f"Path is not a file: {input_data.file_path}")

        self.check_stop(stop)
        if input_data.create_dirs:
            file_path.parent.mkdir(parents=True, exist_ok=True)

        bytes_written = file_path.write_text(input_data.content, encoding=input_data.encoding)
        logger.info(f"Successfully wrote file: {file_path} ({bytes_written} bytes)")
        return WriteFileOutput(file_path=self.relative(file_path), bytes_written=bytes_written, created=not existed)


class SearchWorkspaceHandler(WorkspaceToolHandler[SearchWorkspaceInput, SearchWorkspaceOutput]):
    @property
    def name(self) -> str:
        return SEARCH_WORKSPACE

    @staticmethod
    def compile(input_data: SearchWorkspaceInput) -> "re.Pattern[str]":
        pattern = input_data.query if input_data.is_regexp else re.escape(input_data.query)
        if input_data.is_whole_word:
            pattern = rf"\b{pattern}\b"
        flags = 0 if input_data.is_case_sensitive else re.IGNORECASE
        return re.compile(pattern, flags)

    def run(self, input_data: SearchWorkspaceInput, stop: threading.Event) -> SearchWorkspaceOutput:
        regex = self.compile(input_data)
        results: List[SearchMatch] = []
        searched = 0
        truncated = False

        for path in self.iter_files(self.root, stop=stop):
            rel = self.relative(path)
            if not _glob_match(rel, input_data.include_pattern):
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (UnicodeDecodeError, OSError) as e:
                logger.debug(f"Skipping unreadable file {rel}: {e}")
                continue
            searched += 1
            for lineno, line in enumerate(text.splitlines(), start=1):
                for match in regex.finditer(line):
                    if len(results) >= input_data.max_results:
                        truncated = True
                        break
                    results.append(
                        SearchMatch(file_path=rel, line_number=lineno, line_text=line, match_text=match.group(0))
                    )
                if truncated:
                    break
            if truncated:
                break

        logger.info(f"Search for {input_data.query!r} found {len(results)} matches in {searched} files")
        return SearchWorkspaceOutput(results=results, files_searched=searched, truncated=truncated)


class ProjectInfoHandler(WorkspaceToolHandler[ProjectInfoInput, ProjectInfoOutput]):
    @property
    def name(self) -> str:
        return GET_PROJECT_INFO

    def _manifest_name(self) -> Tuple[Optional[str], Optional[str]]:
        pyproject = self.root / "pyproject.toml"
        if pyproject.is_file():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
                name = data.get("project", {}).get("name")
                if name:
                    return str(name), "pyproject.toml"
            except (tomllib.TOMLDecodeError, OSError) as e:
                logger.warning(f"Could not read pyproject.toml: {e}")

        package_json = self.root / "package.json"
        if package_json.is_file():
            try:
                data = json.loads(package_json.read_text(encoding="utf-8"))
                if isinstance(data, dict) and data.get("name"):
                    return str(data["name"]), "package.json"
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Could not read package.json: {e}")
        return None, None

    def _git_info(self) -> GitInfo:
        head = self.root / ".git" / "HEAD"
        if not (self.root / ".git").exists():
            return GitInfo(has_git=False)
        branch = None
        try:
            match = re.match(r"ref: refs/heads/(.+)", head.read_text(encoding="utf-8").strip())
            if match:
                branch = match.group(1)
        except OSError as e:
            logger.warning(f"Error reading .git/HEAD: {e}")
        return GitInfo(has_git=True, current_branch=branch)

    def run(self, input_data: ProjectInfoInput, stop: threading.Event) -> ProjectInfoOutput:
        name, manifest = self._manifest_name()
        extensions: Counter = Counter()
        total = 0
        for path in self.iter_files(self.root, stop=stop):
            total += 1
            if path.suffix:
                extensions[path.suffix[1:].lower()] += 1

        return ProjectInfoOutput(
            name=name or self.root.name,
            root_path=str(self.root),
            manifest=manifest,
            git=self._git_info(),
            file_stats=FileStats(total_files=total, by_extension=dict(extensions)),
        )


class ApplyWorkspaceEditHandler(WorkspaceToolHandler[ApplyWorkspaceEditInput, ApplyWorkspaceEditOutput]):
    """Applies every edit or none: all files are checked before any is written."""

    @property
    def name(self) -> str:
        return APPLY_WORKSPACE_EDIT

    @staticmethod
    def _apply(lines: List[str], edits: List[TextEdit], file_path: str) -> List[str]:
        ordered = sorted(edits, key=lambda e: e.start_line)
        for prev, nxt in zip(ordered, ordered[1:]):
            prev_end = prev.end_line if prev.end_line is not None else prev.start_line - 1
            if nxt.start_line <= prev_end:
                raise ValueError(f"Overlapping edits in {file_path} at line {nxt.start_line}")

        for edit in reversed(ordered):
            if edit.start_line > len(lines) + 1:
                raise ValueError(f"Edit starts past end of {file_path}: line {edit.start_line}")
            if edit.end_line is not None and edit.end_line > len(lines):
                raise ValueError(f"Edit ends past end of {file_path}: line {edit.end_line}")
            new_lines = edit.new_text.splitlines(keepends=True)
            if new_lines and not new_lines[-1].endswith("\n"):
                new_lines[-1] += "\n"
            end = edit.end_line if edit.end_line is not None else edit.start_line - 1
            lines[edit.start_line - 1 : end] = new_lines
        return lines

    def run(self, input_data: ApplyWorkspaceEditInput, stop: threading.Event) -> ApplyWorkspaceEditOutput:
        by_file: Dict[Path, List[TextEdit]] = {}
        for edit in input_data.edits:
            by_file.setdefault(self.resolve(edit.file_path), []).append(edit)

        pending: Dict[Path, str] = {}
        for path, edits in by_file.items():
            if not path.is_file():
                raise FileNotFoundError(f"File not found: {self.relative(path)}")
            lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
            pending[path] = "".join(self._apply(lines, edits, self.relative(path)))

        self.check_stop(stop)
        for path, content in pending.items():
            path.write_text(content, encoding="utf-8")

        changed = [self.relative(p) for p in pending]
        logger.info(f"Applied {len(input_data.edits)} edits across {len(changed)} files")
        return ApplyWorkspaceEditOutput(files_changed=changed, edits_applied=len(input_data.edits))


def workspace_tools(root: Union[str, Path]) -> List[ToolDefinition]:
    """Build the builtin tool definitions bound to ``root``."""
    bindings: List[Tuple[WorkspaceToolHandler[Any, Any], Any, Any]] = [
        (ListFilesHandler(root), ListFilesInput, ListFilesOutput),
        (FileContentsHandler(root), FileContentsInput, FileContentsOutput),
        (WriteFileHandler(root), WriteFileInput, WriteFileOutput),
        (SearchWorkspaceHandler(root), SearchWorkspaceInput, SearchWorkspaceOutput),
        (ProjectInfoHandler(root), ProjectInfoInput, ProjectInfoOutput),
        (ApplyWorkspaceEditHandler(root), ApplyWorkspaceEditInput, ApplyWorkspaceEditOutput),
    ]
    return [
        ToolDefinition(
            name=handler.name,
            description=DESCRIPTIONS[handler.name],
            input_schema=input_schema,
            output_schema=output_schema,
            handler=handler,
            required_permissions=PERMISSIONS[handler.name],
        )
        for handler, input_schema, output_schema in bindings
    ]


def register_workspace_tools(registry: ToolRegistry, root: Union[str, Path]) -> List[str]:
    """
    Register the builtin workspace tools rooted at ``root``.

    Returns:
        The names of the registered tools.
    """
    names = []
    for tool in workspace_tools(root):
        registry.register(tool)
        names.append(tool.name)
    logger.info(f"Registered {len(names)} workspace tools rooted at {Path(root).resolve()}")
    return names
