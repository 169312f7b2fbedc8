import os

import pytest

from agent_sandbox.errors import (
    FileOperationError,
    NotAFileError,
    NotFoundError,
    PathEscapeError,
    TooLargeError,
)
from agent_sandbox.tools.files import FileService


MAX_SIZE = 64


@pytest.fixture
def files(workspace):
    return FileService(max_file_size=MAX_SIZE, workspace_dir=workspace)


@pytest.mark.parametrize(
    "content",
    ["", "hello\n", "line1\r\nline2\n", "x" * (MAX_SIZE - 1), "x" * MAX_SIZE],
)
def test_write_then_read(files, content):
    files.write("test.txt", content)
    assert files.read("test.txt") == content


def test_write_creates_parent_directories(files, workspace):
    files.write("nested/deeper/file.txt", "content")
    assert (workspace / "nested" / "deeper" / "file.txt").read_text() == "content"


def test_write_truncates_existing_file(files, workspace):
    files.write("test.txt", "a much longer original")
    files.write("test.txt", "short")
    assert (workspace / "test.txt").read_text() == "short"


def test_write_too_large_leaves_no_trace(files, workspace):
    with pytest.raises(TooLargeError, match="content too large"):
        files.write("new/dir/big.txt", "x" * (MAX_SIZE + 1))

    assert list(workspace.iterdir()) == []


def test_write_size_counts_utf8_bytes(files):
    # 33 characters, 66 bytes
    with pytest.raises(TooLargeError):
        files.write("wide.txt", "é" * 33)


def test_read_missing_file(files):
    with pytest.raises(NotFoundError, match="file not found: missing.txt"):
        files.read("missing.txt")


def test_read_directory(files, workspace):
    (workspace / "subdir").mkdir()
    with pytest.raises(NotAFileError):
        files.read("subdir")


def test_read_too_large(files, workspace):
    (workspace / "big.txt").write_text("x" * (MAX_SIZE + 1))
    with pytest.raises(TooLargeError, match="file too large"):
        files.read("big.txt")


def test_leading_slash_stays_in_workspace(files, workspace):
    files.write("/abs.txt", "inside")
    assert (workspace / "abs.txt").read_text() == "inside"
    assert files.read("/abs.txt") == "inside"


def test_edit_replaces_content(files, workspace):
    (workspace / "test.txt").write_text("original content")

    result = files.edit("test.txt", "new")

    assert result.path == "test.txt"
    assert result.content == "new"
    assert (workspace / "test.txt").read_text() == "new"


def test_edit_to_empty(files, workspace):
    (workspace / "test.txt").write_text("original content")

    files.edit("test.txt", "")

    assert (workspace / "test.txt").read_text() == ""


def test_edit_missing_file_creates_nothing(files, workspace):
    with pytest.raises(NotFoundError):
        files.edit("missing/test.txt", "content")

    assert list(workspace.iterdir()) == []


def test_edit_too_large(files, workspace):
    (workspace / "test.txt").write_text("original")

    with pytest.raises(TooLargeError):
        files.edit("test.txt", "x" * (MAX_SIZE + 1))

    assert (workspace / "test.txt").read_text() == "original"


@pytest.mark.parametrize("path", ["../outside.txt", "a/../../outside.txt", "a/b/../../../outside.txt"])
def test_traversal_rejected(files, workspace, path):
    (workspace.parent / "outside.txt").write_text("secret")

    with pytest.raises(PathEscapeError):
        files.read(path)
    with pytest.raises(PathEscapeError):
        files.write(path, "overwritten")
    with pytest.raises(PathEscapeError):
        files.edit(path, "overwritten")

    assert (workspace.parent / "outside.txt").read_text() == "secret"


def test_symlink_escape_rejected(files, workspace, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("secret")
    os.symlink(outside, workspace / "link")

    with pytest.raises(PathEscapeError):
        files.read("link/secret.txt")


def test_dotdot_inside_workspace_allowed(files, workspace):
    files.write("a/../b.txt", "ok")
    assert (workspace / "b.txt").read_text() == "ok"


def test_unconfined_mode_allows_traversal(workspace):
    files = FileService(max_file_size=MAX_SIZE, workspace_dir=workspace, confine_paths=False)
    (workspace.parent / "outside.txt").write_text("reachable")

    assert files.read("../outside.txt") == "reachable"


def test_write_over_directory(files, workspace):
    (workspace / "sub").mkdir()

    with pytest.raises(FileOperationError) as exc_info:
        files.write("sub", "x")

    assert exc_info.value.message.startswith("failed to write file: sub: ")
    assert str(workspace) not in exc_info.value.message


def test_write_below_regular_file(files, workspace):
    (workspace / "f").write_text("x")

    with pytest.raises(FileOperationError) as exc_info:
        files.write("f/child.txt", "y")

    assert str(workspace) not in exc_info.value.message
    assert (workspace / "f").read_text() == "x"
