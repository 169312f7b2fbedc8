"""Workspace file tools.

Read, write and edit files under a fixed workspace root:
- read: size checked against the limit before loading the file
- write: creates parent directories, creates or truncates the file
- edit: full overwrite of an existing file, never creates one
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from agent_sandbox.errors import (
    NotAFileError,
    FileOperationError,
    NotFoundError,
    PathEscapeError,
    TooLargeError,
)


logger = logging.getLogger(__name__)

# Default maximum file size (100MB)
MAX_FILE_SIZE = 100 * 1024 * 1024


def _is_safe_path(workspace_dir: str, full_path: str) -> bool:
    """Check if full_path is workspace_dir or lies below it."""
    root = os.path.realpath(workspace_dir)
    target = os.path.realpath(full_path)
    return os.path.commonpath([root, target]) == root


@dataclass(frozen=True)
class EditResult:
    path: str
    content: str


class FileService:
    """File operations confined to ``workspace_dir``.

    With ``confine_paths`` disabled, paths are only joined onto the root,
    so ``..`` components can reach outside of it.
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        workspace_dir: str | Path = ".",
        confine_paths: bool = True,
    ):
        self.max_file_size = max_file_size
        self.workspace_dir = Path(workspace_dir)
        self.confine_paths = confine_paths

    def _resolve(self, path: str) -> str:
        # Treat absolute input as relative to the workspace, like a path join
        full_path = os.path.normpath(
            os.path.join(self.workspace_dir, path.lstrip(os.sep))
        )
        if self.confine_paths and not _is_safe_path(str(self.workspace_dir), full_path):
            logger.warning(f"Rejected path outside workspace: {path}")
            raise PathEscapeError(f"path escapes workspace: {path}")
        return full_path

    def _check_size(self, content: str) -> None:
        content_size = len(content.encode("utf-8"))
        if content_size > self.max_file_size:
            raise TooLargeError(
                f"content too large: {content_size} bytes (max: {self.max_file_size})"
            )

    def read(self, path: str) -> str:
        """Return the text content of ``path``.

        Raises:
            NotFoundError: nothing exists at ``path``.
            NotAFileError: ``path`` is a directory or other non-regular file.
            TooLargeError: the file is bigger than ``max_file_size``.
        """
        full_path = self._resolve(path)

        try:
            info = os.stat(full_path)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError(f"file not found: {path}") from None

        if os.path.isdir(full_path):
            raise NotAFileError(f"path is not a file: {path}")

        if info.st_size > self.max_file_size:
            raise TooLargeError(
                f"file too large: {info.st_size} bytes (max: {self.max_file_size})"
            )

        try:
            with open(full_path, "r", encoding="utf-8", errors="replace", newline="") as f:
                return f.read()
        except OSError as e:
            raise FileOperationError(f"failed to read file: {path}: {e.strerror}") from e

    def write(self, path: str, content: str) -> None:
        """Create or truncate ``path`` with ``content``.

        The size check happens before anything touches the disk.
        """
        full_path = self._resolve(path)
        self._check_size(content)

        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            # strerror only; str(e) would carry the absolute path
            raise FileOperationError(f"failed to write file: {path}: {e.strerror}") from e

    def edit(self, path: str, content: str) -> EditResult:
        """Replace the whole content of an existing file."""
        full_path = self._resolve(path)
        self._check_size(content)

        if not os.path.exists(full_path):
            raise NotFoundError(f"file not found: {path}")
        if os.path.isdir(full_path):
            raise NotAFileError(f"path is not a file: {path}")

        try:
            with open(full_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise FileOperationError(f"failed to edit file: {path}: {e.strerror}") from e

        return EditResult(path=path, content=content)
