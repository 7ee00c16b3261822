"""Tests for with_temp_path, with_temp_dir, temp_path and temp_dir."""
import asyncio
import logging
import os
import tempfile
from pathlib import Path

import pytest

from scriptforge import (
    TempResource,
    TempResourceKind,
    temp_dir,
    temp_path,
    with_temp_dir,
    with_temp_path,
)
from scriptforge.context_managers import temp_resources


# ============================================================================
# with_temp_path
# ============================================================================

def test_with_temp_path_runs_the_callback():
    calls = []
    with_temp_path(calls.append)

    assert len(calls) == 1


def test_with_temp_path_passes_a_path_that_does_not_exist():
    def body(path):
        assert isinstance(path, Path)
        assert not path.exists()
        assert not path.is_symlink()

    with_temp_path(body)


def test_with_temp_path_passes_different_paths_each_time():
    def level1(path1):
        def level2(path2):
            def level3(path3):
                assert len({path1, path2, path3}) == 3
            with_temp_path(level3)
        with_temp_path(level2)

    with_temp_path(level1)


def test_with_temp_path_adds_prefix():
    with_temp_path(lambda path: assert_startswith(path.name, "foo-"), prefix="foo-")


def test_with_temp_path_adds_suffix():
    with_temp_path(lambda path: assert_endswith(str(path), ".txt"), suffix=".txt")


def test_with_temp_path_defaults_to_system_temp():
    with_temp_path(lambda path: assert_directly_under(path, tempfile.gettempdir()))


def test_with_temp_path_puts_path_in_parent(tmp_path):
    def body(path):
        assert path.parent == tmp_path
        assert_directly_under(path, tmp_path)

    with_temp_path(body, parent=tmp_path)


def test_with_temp_path_returns_callback_value():
    assert with_temp_path(lambda _: 123) == 123


def test_with_temp_path_deletes_file_after_success():
    paths = []

    def body(path):
        paths.append(path)
        path.write_text("hello!")
        return 123

    assert with_temp_path(body) == 123
    assert not paths[0].exists()


def test_with_temp_path_deletes_file_after_exception():
    paths = []

    def body(path):
        paths.append(path)
        path.write_text("hello!")
        raise ValueError("oh no")

    with pytest.raises(ValueError, match="oh no"):
        with_temp_path(body)

    assert not paths[0].exists()


def test_with_temp_path_deletes_directory_tree_created_by_callback():
    paths = []

    def body(path):
        paths.append(path)
        (path / "nested" / "deeper").mkdir(parents=True)
        (path / "nested" / "file.txt").write_text("x")

    with_temp_path(body)

    assert not paths[0].exists()


def test_with_temp_path_deletes_symlink_but_not_target(tmp_path):
    target = tmp_path / "target.txt"
    target.write_text("keep me")
    paths = []

    def body(path):
        paths.append(path)
        os.symlink(target, path)

    with_temp_path(body, parent=tmp_path)

    assert not paths[0].is_symlink()
    assert target.read_text() == "keep me"


def test_with_temp_path_returns_awaitable_result_without_running_loop():
    async def body(path):
        path.write_text("hello!")
        await asyncio.sleep(0)
        return 123

    assert asyncio.run(with_temp_path(body)) == 123


@pytest.mark.asyncio
async def test_with_temp_path_returns_callback_value_asynchronously():
    async def body(_):
        return 123

    assert await with_temp_path(body) == 123


@pytest.mark.asyncio
async def test_with_temp_path_deletes_after_awaitable_succeeds():
    loop = asyncio.get_running_loop()
    completer = loop.create_future()
    paths = []

    def body(path):
        paths.append(path)
        path.write_text("hello!")
        return completer

    task = with_temp_path(body)
    assert paths[0].exists()

    completer.set_result(None)
    await task
    assert not paths[0].exists()


@pytest.mark.asyncio
async def test_with_temp_path_deletes_after_awaitable_fails():
    loop = asyncio.get_running_loop()
    completer = loop.create_future()
    paths = []

    def body(path):
        paths.append(path)
        path.write_text("hello!")
        return completer

    task = with_temp_path(body)
    assert paths[0].exists()

    completer.set_exception(ValueError("oh no"))
    with pytest.raises(ValueError, match="oh no"):
        await task
    assert not paths[0].exists()


@pytest.mark.asyncio
async def test_with_temp_path_deletes_after_cancellation():
    loop = asyncio.get_running_loop()
    never = loop.create_future()
    paths = []

    def body(path):
        paths.append(path)
        path.write_text("hello!")
        return never

    task = with_temp_path(body)
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert not paths[0].exists()


# ============================================================================
# with_temp_dir
# ============================================================================

def test_with_temp_dir_runs_the_callback():
    calls = []
    with_temp_dir(calls.append)

    assert len(calls) == 1


def test_with_temp_dir_creates_empty_directory():
    def body(directory):
        assert directory.is_dir()
        assert list(directory.iterdir()) == []

    with_temp_dir(body)


def test_with_temp_dir_creates_different_directories_each_time():
    def level1(dir1):
        def level2(dir2):
            def level3(dir3):
                assert len({dir1, dir2, dir3}) == 3
            with_temp_dir(level3)
        with_temp_dir(level2)

    with_temp_dir(level1)


def test_with_temp_dir_adds_prefix_and_suffix():
    def body(directory):
        assert directory.name.startswith("foo-")
        assert directory.name.endswith(".txt")

    with_temp_dir(body, prefix="foo-", suffix=".txt")


def test_with_temp_dir_defaults_to_system_temp():
    with_temp_dir(lambda directory: assert_directly_under(directory, tempfile.gettempdir()))


def test_with_temp_dir_puts_directory_in_parent(tmp_path):
    with_temp_dir(lambda directory: assert_directly_under(directory, tmp_path), parent=tmp_path)


def test_with_temp_dir_returns_callback_value():
    assert with_temp_dir(lambda _: 123) == 123


def test_with_temp_dir_deletes_directory_with_contents():
    dirs = []

    def body(directory):
        dirs.append(directory)
        (directory / "file.txt").write_text("hello!")
        (directory / "sub" / "deeper").mkdir(parents=True)
        (directory / "sub" / "deeper" / "more.txt").write_text("x")

    with_temp_dir(body)

    assert not dirs[0].exists()


def test_with_temp_dir_deletes_directory_after_exception():
    dirs = []

    def body(directory):
        dirs.append(directory)
        (directory / "file.txt").write_text("x")
        raise ValueError("oh no")

    with pytest.raises(ValueError, match="oh no"):
        with_temp_dir(body)

    assert not dirs[0].exists()


def test_with_temp_dir_tolerates_callback_removing_directory():
    dirs = []

    def body(directory):
        dirs.append(directory)
        directory.rmdir()
        return "gone"

    assert with_temp_dir(body) == "gone"
    assert not dirs[0].exists()


@pytest.mark.asyncio
async def test_with_temp_dir_returns_callback_value_asynchronously():
    loop = asyncio.get_running_loop()
    completer = loop.create_future()
    completer.set_result(123)

    assert await with_temp_dir(lambda _: completer) == 123


@pytest.mark.asyncio
async def test_with_temp_dir_deletes_after_awaitable_succeeds():
    loop = asyncio.get_running_loop()
    completer = loop.create_future()
    dirs = []

    def body(directory):
        dirs.append(directory)
        return completer

    task = with_temp_dir(body)
    assert dirs[0].is_dir()

    completer.set_result(None)
    await task
    assert not dirs[0].exists()


@pytest.mark.asyncio
async def test_with_temp_dir_deletes_after_awaitable_fails():
    loop = asyncio.get_running_loop()
    completer = loop.create_future()
    dirs = []

    def body(directory):
        dirs.append(directory)
        return completer

    task = with_temp_dir(body)
    assert dirs[0].is_dir()

    completer.set_exception(ValueError("oh no"))
    with pytest.raises(ValueError, match="oh no"):
        await task
    assert not dirs[0].exists()


@pytest.mark.asyncio
async def test_with_temp_dir_async_body_can_populate_directory():
    async def body(directory):
        await asyncio.sleep(0)
        (directory / "late.txt").write_text("x")
        await asyncio.sleep(0)
        return directory

    directory = await with_temp_dir(body)
    assert not directory.exists()


# ============================================================================
# Cleanup failures
# ============================================================================

def test_cleanup_failure_does_not_mask_callback_error(monkeypatch, caplog):
    def failing_remove(path):
        raise PermissionError("cannot delete")

    monkeypatch.setattr(temp_resources, "_remove_recursively", failing_remove)

    def body(_):
        raise ValueError("callback failed")

    with caplog.at_level(logging.WARNING):
        with pytest.raises(ValueError, match="callback failed"):
            with_temp_path(body)

    assert "Cleanup failed" in caplog.text


def test_cleanup_failure_raised_when_callback_succeeded(monkeypatch):
    def failing_remove(path):
        raise PermissionError("cannot delete")

    monkeypatch.setattr(temp_resources, "_remove_recursively", failing_remove)

    with pytest.raises(PermissionError, match="cannot delete"):
        with_temp_path(lambda _: 123)


# ============================================================================
# TempResource and context managers
# ============================================================================

def test_temp_resource_release_is_idempotent(tmp_path):
    resource = TempResource.reserve(TempResourceKind.DIRECTORY, parent=tmp_path)
    assert resource.created
    assert resource.parent == tmp_path

    resource.release()
    resource.release()

    assert resource.released
    assert not resource.path.exists()


def test_temp_resource_file_path_creates_nothing(tmp_path):
    resource = TempResource.reserve(TempResourceKind.FILE_PATH, prefix="x", parent=tmp_path)

    assert not resource.created
    assert not resource.path.exists()
    assert list(tmp_path.iterdir()) == []


def test_temp_path_context_manager_deletes_on_exit():
    with temp_path(suffix=".log") as path:
        assert not path.exists()
        path.write_text("hello!")

    assert path.name.endswith(".log")
    assert not path.exists()


def test_temp_dir_context_manager_deletes_on_exception():
    with pytest.raises(RuntimeError):
        with temp_dir(prefix="ctx-") as directory:
            (directory / "file.txt").write_text("x")
            raise RuntimeError("boom")

    assert directory.name.startswith("ctx-")
    assert not directory.exists()


def test_invalid_parent_rejected(tmp_path):
    missing = tmp_path / "missing"

    with pytest.raises(ValueError, match="does not exist"):
        with_temp_dir(lambda _: None, parent=missing)


def test_prefix_with_separator_rejected():
    with pytest.raises(ValueError, match="path separators"):
        with_temp_path(lambda _: None, prefix=f"..{os.sep}escape-")


def assert_startswith(text, prefix):
    assert text.startswith(prefix)


def assert_endswith(text, suffix):
    assert text.endswith(suffix)


def assert_directly_under(path, root):
    assert Path(path).parent == Path(os.path.abspath(root))
