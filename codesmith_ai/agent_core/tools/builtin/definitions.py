"""Input/output schemas and definitions for the builtin workspace tools.

All paths are relative to the workspace root the tools are registered with.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from ...policy.models import ToolPermission


class ListFilesInput(BaseModel):
    """Input schema for listing workspace files."""

    path: str = Field(default=".", description="Directory to list, relative to the workspace root")
    pattern: str = Field(default="**/*", description="Glob pattern matched against file paths")
    max_results: int = Field(default=500, gt=0, description="Maximum number of files to return")
    include_hidden: bool = Field(default=False, description="Include dot-files and dot-directories")


class ListFilesOutput(BaseModel):
    """Output schema for listing workspace files."""

    root: str = Field(..., description="Directory that was listed, relative to the workspace root")
    files: List[str] = Field(default_factory=list, description="Matching files, relative to the workspace root")
    truncated: bool = Field(default=False, description="Whether max_results cut the listing short")


class FileContentsInput(BaseModel):
    """Input schema for reading a workspace file."""

    file_path: str = Field(..., min_length=1, description="File to read, relative to the workspace root")
    encoding: str = Field(default="utf-8", description="File encoding (default: utf-8)")


class FileContentsOutput(BaseModel):
    """Output schema for reading a workspace file."""

    file_path: str = Field(..., description="Path of the file read")
    content: str = Field(..., description="File content")
    size_bytes: int = Field(..., ge=0, description="Size of file in bytes")
    line_count: int = Field(..., ge=0, description="Number of lines in the file")


class WriteFileInput(BaseModel):
    """Input schema for writing a workspace file."""

    file_path: str = Field(..., min_length=1, description="File to write, relative to the workspace root")
    content: str = Field(..., description="Content to write to the file")
    encoding: str = Field(default="utf-8", description="File encoding (default: utf-8)")
    create_dirs: bool = Field(default=True, description="Create parent directories if they don't exist")
    overwrite: bool = Field(default=True, description="Replace the file if it already exists")


class WriteFileOutput(BaseModel):
    """Output schema for writing a workspace file."""

    file_path: str = Field(..., description="Path of the file written")
    bytes_written: int = Field(..., ge=0, description="Number of characters written")
    created: bool = Field(..., description="Whether the file did not exist before")


class SearchWorkspaceInput(BaseModel):
    """Input schema for text search across workspace files."""

    query: str = Field(..., min_length=1, description="Text or regular expression to search for")
    include_pattern: str = Field(default="**/*", description="Glob pattern selecting files to search")
    max_results: int = Field(default=100, gt=0, description="Maximum number of matches to return")
    is_case_sensitive: bool = Field(default=False)
    is_regexp: bool = Field(default=False, description="Treat query as a regular expression")
    is_whole_word: bool = Field(default=False)


class SearchMatch(BaseModel):
    file_path: str
    line_number: int = Field(..., ge=1)
    line_text: str
    match_text: str


class SearchWorkspaceOutput(BaseModel):
    """Output schema for text search across workspace files."""

    results: List[SearchMatch] = Field(default_factory=list)
    files_searched: int = Field(default=0, ge=0)
    truncated: bool = Field(default=False)


class ProjectInfoInput(BaseModel):
    """The project info tool takes no parameters."""


class GitInfo(BaseModel):
    has_git: bool = False
    current_branch: Optional[str] = None


class FileStats(BaseModel):
    total_files: int = Field(default=0, ge=0)
    by_extension: Dict[str, int] = Field(default_factory=dict)


class ProjectInfoOutput(BaseModel):
    """Output schema for project information."""

    name: str = Field(..., description="Project name from its manifest, or the root directory name")
    root_path: str
    manifest: Optional[str] = Field(None, description="Manifest file the name was read from")
    git: GitInfo = Field(default_factory=GitInfo)
    file_stats: FileStats = Field(default_factory=FileStats)


class TextEdit(BaseModel):
    """Replace lines ``start_line``..``end_line`` (1-based, inclusive) of a file.

    When ``end_line`` is omitted ``new_text`` is inserted before ``start_line``
    and nothing is removed.
    """

    file_path: str = Field(..., min_length=1)
    start_line: int = Field(..., ge=1)
    end_line: Optional[int] = Field(default=None, ge=1)
    new_text: str = Field(default="")

    @model_validator(mode="after")
    def _check_range(self) -> "TextEdit":
        if self.end_line is not None and self.end_line < self.start_line:
            raise ValueError("end_line must be greater than or equal to start_line")
        return self


class ApplyWorkspaceEditInput(BaseModel):
    """Input schema for applying a batch of line edits."""

    edits: List[TextEdit] = Field(..., min_length=1, description="Edits to apply")


class ApplyWorkspaceEditOutput(BaseModel):
    """Output schema for applying a batch of line edits."""

    files_changed: List[str] = Field(default_factory=list)
    edits_applied: int = Field(default=0, ge=0)


LIST_FILES = "filesystem.getWorkspaceFiles"
GET_FILE_CONTENTS = "filesystem.getFileContents"
WRITE_FILE = "filesystem.writeFile"
SEARCH_WORKSPACE = "project.searchWorkspace"
GET_PROJECT_INFO = "project.getProjectInfo"
APPLY_WORKSPACE_EDIT = "codeManipulation.applyWorkspaceEdit"

DESCRIPTIONS: Dict[str, str] = {
    LIST_FILES: "List files in the workspace, optionally filtered by a glob pattern.",
    GET_FILE_CONTENTS: "Read the full text contents of a workspace file.",
    WRITE_FILE: "Write text content to a workspace file, creating it if needed.",
    SEARCH_WORKSPACE: "Search for text or a regular expression across workspace files.",
    GET_PROJECT_INFO: "Get project information: name, manifest, git branch and file statistics.",
    APPLY_WORKSPACE_EDIT: "Apply line-range edits to one or more workspace files.",
}

_READ = (ToolPermission.filesystem_read.value,)
_WRITE = (ToolPermission.filesystem_write.value,)

PERMISSIONS: Dict[str, Tuple[str, ...]] = {
    LIST_FILES: _READ,
    GET_FILE_CONTENTS: _READ,
    WRITE_FILE: _WRITE,
    SEARCH_WORKSPACE: _READ,
    GET_PROJECT_INFO: (ToolPermission.workspace_info_read.value,),
    APPLY_WORKSPACE_EDIT: _WRITE,
}
