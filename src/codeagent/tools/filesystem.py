"""
File-system tools: read a file, list a directory, edit (or create) a file.

Paths are resolved against the current working directory at call time.  Expected failures
(missing file, ambiguous edit, ...) are returned as error results so the model can correct itself.
"""

import json
import logging
from pathlib import Path

from pydantic import (
    BaseModel,
    Field,
)

from codeagent.tools import (
    ToolOutput,
    ToolRegistry,
)

logger = logging.getLogger(__name__)


def _resolve(path: str) -> Path:
    return Path.cwd() / path


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------
class ReadFileInput(BaseModel):
    """Input of ``read_file``."""

    file_path: str = Field(..., description="The relative path of the file to read")


def read_file(params: ReadFileInput) -> ToolOutput:
    """Return the UTF-8 contents of a file."""
    target = _resolve(params.file_path)
    if not target.exists():
        return ToolOutput.error(f"Error: File not found: {params.file_path}")
    if target.is_dir():
        return ToolOutput.error(f"Error: Path is a directory, not a file: {params.file_path}")
    try:
        return ToolOutput.ok(target.read_text(encoding="utf-8"))
    except UnicodeDecodeError:
        return ToolOutput.error(f"Error: File is not valid UTF-8 text: {params.file_path}")


# ---------------------------------------------------------------------------
# list_files
# ---------------------------------------------------------------------------
class ListFilesInput(BaseModel):
    """Input of ``list_files``."""

    path: str = Field(
        ".",
        description=(
            "The relative path of the directory to list "
            "(optional, defaults to current working directory)"
        ),
    )


def list_files(params: ListFilesInput) -> ToolOutput:
    """List a directory as a JSON array; directories get a trailing ``/``."""
    shown = params.path or "."
    target = _resolve(shown)
    if not target.exists():
        return ToolOutput.error(f"Error: Path does not exist: {shown}")
    if not target.is_dir():
        return ToolOutput.error(f"Error: Path is not a directory: {shown}")

    names = sorted(
        f"{entry.name}/" if entry.is_dir() else entry.name for entry in target.iterdir()
    )
    return ToolOutput.ok(json.dumps(names))


# ---------------------------------------------------------------------------
# edit_file
# ---------------------------------------------------------------------------
class EditFileInput(BaseModel):
    """Input of ``edit_file``."""

    file_path: str = Field(..., description="The relative path of the file to edit")
    old_string: str = Field(
        ...,
        description=(
            "The string to find and replace. If empty and the file does not exist, "
            "the file will be created."
        ),
    )
    new_string: str = Field(
        ...,
        description="The string to replace old_string with, or the content for a new file",
    )


def edit_file(params: EditFileInput) -> ToolOutput:
    """
    Replace the single occurrence of ``old_string`` with ``new_string``.

    An empty ``old_string`` creates the file, which must not exist yet.  The edit is refused when
    ``old_string`` is missing or appears more than once.
    """
    target = _resolve(params.file_path)

    if params.old_string == "":
        if target.exists():
            return ToolOutput.error(
                f"Error: old_string is empty but file already exists: {params.file_path}"
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(params.new_string, encoding="utf-8")
        logger.info("Created %s", target)
        return ToolOutput.ok(f"Created file: {params.file_path}")

    if not target.is_file():
        return ToolOutput.error(f"Error: File not found: {params.file_path}")

    content = target.read_text(encoding="utf-8")
    occurrences = content.count(params.old_string)
    if occurrences == 0:
        return ToolOutput.error(f"Error: old_string not found in file: {params.file_path}")
    if occurrences > 1:
        return ToolOutput.error(
            f"Error: old_string appears {occurrences} times in file. The edit must be "
            "unambiguous; provide a more specific old_string."
        )

    target.write_text(content.replace(params.old_string, params.new_string, 1), encoding="utf-8")
    logger.info("Edited %s", target)
    return ToolOutput.ok(
        f"Successfully edited {params.file_path}: replaced 1 occurrence of the specified string."
    )


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------
def register_filesystem_tools(registry: ToolRegistry) -> None:
    """Register ``read_file``, ``list_files`` and ``edit_file`` on *registry*."""
    registry.tool(
        "read_file",
        "Read the contents of a file at the given path. The path is resolved relative to the "
        "current working directory. Do not use this with directory names.",
        ReadFileInput,
    )(read_file)
    registry.tool(
        "list_files",
        "List the contents of a directory. Returns a JSON array of file and directory names. "
        "Directories have a trailing /. Path is resolved relative to the current working "
        "directory. Defaults to the current working directory if no path is provided.",
        ListFilesInput,
    )(list_files)
    registry.tool(
        "edit_file",
        "Edit a file by replacing the single occurrence of old_string with new_string. If "
        "old_string is empty and the file does not exist, creates the file with new_string as "
        "content. The file path is resolved relative to the current working directory.",
        EditFileInput,
    )(edit_file)
