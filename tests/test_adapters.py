"""Tests for the execution mode adapters."""

import inspect
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from host_backup.adapters import ActionAdapter, ExecuteAdapter, SimulateAdapter
from host_backup.adapters.base import describe_copy, describe_delete, describe_rename


# ============================================================================
# Protocol
# ============================================================================


class TestProtocol:
    """Tests for the ActionAdapter Protocol shape."""

    EXPECTED = {"delete", "rename", "mkdir", "touch", "run_copy"}

    def test_protocol_methods(self) -> None:
        methods = {
            name
            for name, member in inspect.getmembers(ActionAdapter, inspect.isfunction)
            if not name.startswith("_")
        }
        assert methods == self.EXPECTED

    @pytest.mark.parametrize("adapter_cls", [ExecuteAdapter, SimulateAdapter])
    def test_implementations_are_sync(self, adapter_cls) -> None:
        for name in self.EXPECTED:
            method = getattr(adapter_cls, name)
            assert callable(method)
            assert not inspect.iscoroutinefunction(method)


# ============================================================================
# Renderings
# ============================================================================


class TestDescriptions:
    """Tests for the shared action renderings."""

    def test_trailing_slash(self) -> None:
        assert describe_delete(Path("/b/web17/7")) == "rm -rf /b/web17/7/"
        assert describe_rename(Path("/b/web17/0"), Path("/b/web17/1")) == (
            "mv /b/web17/0/ /b/web17/1/"
        )

    def test_quotes_spaces(self) -> None:
        assert describe_delete(Path("/b/my host/3")) == "rm -rf '/b/my host/3/'"

    def test_copy(self) -> None:
        assert describe_copy(["rsync", "-a", "--exclude=*.log", "x:/etc", "/b/0/"]) == (
            "rsync -a '--exclude=*.log' x:/etc /b/0/"
        )


# ============================================================================
# SimulateAdapter
# ============================================================================


class TestSimulateAdapter:
    """SimulateAdapter journals every call and touches nothing."""

    def test_journal_in_call_order(self, tmp_path: Path) -> None:
        adapter = SimulateAdapter()
        adapter.delete(tmp_path / "2")
        adapter.rename(tmp_path / "1", tmp_path / "2")
        adapter.mkdir(tmp_path / "0")
        rc = adapter.run_copy(["rsync", "-a", "src", "dst"])
        adapter.touch(tmp_path / "0")

        assert rc == 0
        assert adapter.actions == [
            f"rm -rf {tmp_path}/2/",
            f"mv {tmp_path}/1/ {tmp_path}/2/",
            f"mkdir -p {tmp_path}/0/",
            "rsync -a src dst",
            f"touch {tmp_path}/0/",
        ]
        assert list(tmp_path.iterdir()) == []

    def test_never_spawns_processes(self) -> None:
        with patch("subprocess.run") as run:
            SimulateAdapter().run_copy(["rsync", "-a", "a", "b"])
        run.assert_not_called()


# ============================================================================
# ExecuteAdapter
# ============================================================================


class TestExecuteAdapter:
    """ExecuteAdapter performs the same actions for real."""

    def test_delete(self, tmp_path: Path) -> None:
        target = tmp_path / "3"
        (target / "etc").mkdir(parents=True)
        (target / "etc" / "hosts").write_text("x")

        adapter = ExecuteAdapter()
        adapter.delete(target)

        assert not target.exists()
        assert adapter.actions == [f"rm -rf {target}/"]

    def test_rename(self, tmp_path: Path) -> None:
        (tmp_path / "0").mkdir()
        adapter = ExecuteAdapter()
        adapter.rename(tmp_path / "0", tmp_path / "1")

        assert (tmp_path / "1").is_dir()
        assert not (tmp_path / "0").exists()

    def test_rename_onto_existing_target(self, tmp_path: Path) -> None:
        (tmp_path / "0").mkdir()
        (tmp_path / "1").mkdir()

        with pytest.raises(FileExistsError):
            ExecuteAdapter().rename(tmp_path / "0", tmp_path / "1")

        assert (tmp_path / "0").is_dir()

    def test_mkdir_is_idempotent(self, tmp_path: Path) -> None:
        adapter = ExecuteAdapter()
        adapter.mkdir(tmp_path / "0" / "usr" / "local")
        adapter.mkdir(tmp_path / "0" / "usr" / "local")

        assert (tmp_path / "0" / "usr" / "local").is_dir()
        assert len(adapter.actions) == 2

    def test_touch_updates_mtime(self, tmp_path: Path) -> None:
        gen = tmp_path / "0"
        gen.mkdir()
        os.utime(gen, (0, 0))

        ExecuteAdapter().touch(gen)

        assert gen.stat().st_mtime > 0

    def test_run_copy_returns_exit_status(self) -> None:
        with patch("host_backup.adapters.execute.subprocess.run") as run:
            run.return_value.returncode = 23
            adapter = ExecuteAdapter()
            rc = adapter.run_copy(["rsync", "-a", "x:/etc", "/b/0/"])

        assert rc == 23
        run.assert_called_once_with(["rsync", "-a", "x:/etc", "/b/0/"])
        assert adapter.actions == ["rsync -a x:/etc /b/0/"]

    def test_delete_missing_tree_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            ExecuteAdapter().delete(tmp_path / "9")
