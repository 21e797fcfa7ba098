"""Tests for the generation ring manager.

Rings are built on disk under ``tmp_path`` and rotated with the real
ExecuteAdapter, so renames and deletions are observed on the filesystem.
Content preservation is checked by inode identity.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from host_backup.adapters.execute import ExecuteAdapter
from host_backup.adapters.simulate import SimulateAdapter
from host_backup.backup.ring import (
    Generation,
    RotationError,
    current_depth,
    host_ring_path,
    list_generations,
    rotate,
)
from host_backup.config.models import BackupConfig


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _make_ring(ring: Path, indices) -> dict[int, int]:
    """Create generations with one marker file each; return index -> inode."""
    inodes = {}
    for index in indices:
        marker = ring / str(index) / "etc" / "marker"
        marker.parent.mkdir(parents=True)
        marker.write_text(f"generation {index}")
        inodes[index] = marker.stat().st_ino
    return inodes


def _marker_inode(ring: Path, index: int) -> int:
    return (ring / str(index) / "etc" / "marker").stat().st_ino


def _snapshot(root: Path) -> list[tuple]:
    return sorted(
        (str(p.relative_to(root)), p.is_dir(), p.stat().st_ino, p.stat().st_mtime_ns)
        for p in root.rglob("*")
    )


class _FailingAdapter(ExecuteAdapter):
    """ExecuteAdapter whose rename always fails."""

    def rename(self, src: Path, dst: Path) -> None:
        self._record(f"mv {src} {dst}")
        raise PermissionError(13, "Permission denied", str(src))


# ------------------------------------------------------------------
# Generation index
# ------------------------------------------------------------------


class TestGeneration:
    """Test the typed generation index."""

    def test_numeric_order(self) -> None:
        names = ["10", "2", "1", "0", "9"]
        ordered = sorted(Generation.from_name(n) for n in names)
        assert [g.index for g in ordered] == [0, 1, 2, 9, 10]

    @pytest.mark.parametrize("name", ["latest", "1a", "-1", "", "١"])
    def test_non_numeric_names_ignored(self, name: str) -> None:
        assert Generation.from_name(name) is None

    def test_path(self, tmp_path: Path) -> None:
        assert Generation(3).path(tmp_path) == tmp_path / "3"

    def test_host_ring_path(self) -> None:
        config = BackupConfig(backup_root=Path("/backups"))
        assert host_ring_path(config, "alpha") == Path("/backups/alpha")


class TestScan:
    """Test list_generations() / current_depth()."""

    def test_absent_ring(self, tmp_path: Path) -> None:
        assert current_depth(tmp_path / "alpha") is None
        assert list_generations(tmp_path / "alpha") == []

    def test_empty_host_dir_is_absent(self, tmp_path: Path) -> None:
        (tmp_path / "alpha").mkdir()
        assert current_depth(tmp_path / "alpha") is None

    def test_version_aware_depth(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        for index in range(11):
            (ring / str(index)).mkdir(parents=True)
        assert current_depth(ring) == 10

    def test_ignores_files_and_other_names(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        (ring / "0").mkdir(parents=True)
        (ring / "1").mkdir()
        (ring / "7").write_text("not a generation")
        (ring / "lost+found").mkdir()
        assert [g.index for g in list_generations(ring)] == [0, 1]
        assert current_depth(ring) == 1


# ------------------------------------------------------------------
# Rotation
# ------------------------------------------------------------------


class TestRotateFixedRing:
    """Rotation with no cap: the ring keeps its size."""

    def test_first_run_creates_generation_zero(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        adapter = ExecuteAdapter()

        result = rotate(ring, adapter)

        assert (ring / "0").is_dir()
        assert result.previous_depth is None
        assert result.depth == 0
        assert result.incremental is False
        assert adapter.actions == [f"mkdir -p {ring}/0/"]

    def test_depth_zero_replaces_generation_zero(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0])

        result = rotate(ring, ExecuteAdapter())

        assert result.incremental is False
        assert result.deleted == [0]
        assert list((ring / "0").iterdir()) == []

    def test_shifts_and_drops_oldest(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [0, 1, 2, 3])

        result = rotate(ring, ExecuteAdapter())

        assert result.previous_depth == 3
        assert result.depth == 3
        assert result.incremental is True
        assert result.deleted == [3]
        assert current_depth(ring) == 3
        assert list((ring / "0").iterdir()) == []
        for old_index in (0, 1, 2):
            assert _marker_inode(ring, old_index + 1) == inodes[old_index]

    def test_action_order(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0, 1, 2])
        adapter = ExecuteAdapter()

        rotate(ring, adapter)

        assert adapter.actions == [
            f"rm -rf {ring}/2/",
            f"mv {ring}/1/ {ring}/2/",
            f"mv {ring}/0/ {ring}/1/",
            f"mkdir -p {ring}/0/",
        ]


class TestRotateCappedRing:
    """Rotation with max_generations: grow until the cap, then age out."""

    def test_grows_below_cap(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [0, 1])

        result = rotate(ring, ExecuteAdapter(), max_generations=5)

        assert result.depth == 2
        assert result.deleted == []
        assert current_depth(ring) == 2
        assert _marker_inode(ring, 1) == inodes[0]
        assert _marker_inode(ring, 2) == inodes[1]

    def test_first_generation_becomes_base(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [0])

        result = rotate(ring, ExecuteAdapter(), max_generations=3)

        assert result.incremental is True
        assert _marker_inode(ring, 1) == inodes[0]

    def test_caps_depth(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [0, 1, 2])

        result = rotate(ring, ExecuteAdapter(), max_generations=2)

        assert result.depth == 2
        assert result.deleted == [2]
        assert current_depth(ring) == 2
        assert _marker_inode(ring, 2) == inodes[1]
        assert _marker_inode(ring, 1) == inodes[0]

    def test_lowered_cap_trims_extra_generations(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, range(6))

        result = rotate(ring, ExecuteAdapter(), max_generations=2)

        assert result.deleted == [5, 4, 3, 2]
        assert [g.index for g in list_generations(ring)] == [0, 1, 2]
        assert _marker_inode(ring, 2) == inodes[1]

    def test_zero_cap_keeps_single_generation(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0, 1])

        result = rotate(ring, ExecuteAdapter(), max_generations=0)

        assert result.incremental is False
        assert [g.index for g in list_generations(ring)] == [0]


class TestRotateSparseRing:
    """A partially rotated ring is made contiguous again."""

    def test_missing_slots_become_empty_generations(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [0, 2, 5])

        rotate(ring, ExecuteAdapter())

        assert [g.index for g in list_generations(ring)] == [0, 1, 2, 3, 4, 5]
        assert _marker_inode(ring, 1) == inodes[0]
        assert _marker_inode(ring, 3) == inodes[2]
        assert list((ring / "2").iterdir()) == []
        assert list((ring / "5").iterdir()) == []

    def test_missing_zero(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        inodes = _make_ring(ring, [1, 2])

        result = rotate(ring, ExecuteAdapter())

        assert result.incremental is True
        assert [g.index for g in list_generations(ring)] == [0, 1, 2]
        assert _marker_inode(ring, 2) == inodes[1]
        assert list((ring / "1").iterdir()) == []


class TestRotateFailures:
    """Filesystem errors abort the rotation."""

    def test_rename_failure_raises_rotation_error(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0, 1])
        adapter = _FailingAdapter()

        with pytest.raises(RotationError, match="rename failed") as exc_info:
            rotate(ring, adapter)

        assert exc_info.value.stage == "rotation"
        # oldest already gone, nothing after the failing step attempted
        assert not (ring / "1").exists()
        assert (ring / "0").is_dir()
        assert len(adapter.actions) == 2

    def test_unreadable_ring_raises_rotation_error(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0, 1])
        adapter = SimulateAdapter()

        with patch.object(
            Path, "iterdir", side_effect=PermissionError(13, "Permission denied")
        ):
            with pytest.raises(RotationError, match="Cannot scan") as exc_info:
                rotate(ring, adapter)

        assert exc_info.value.stage == "rotation"
        assert adapter.actions == []


class TestRotateSimulated:
    """Dry-run rotation describes the same steps and touches nothing."""

    def test_simulate_matches_execute(self, tmp_path: Path) -> None:
        ring = tmp_path / "alpha"
        _make_ring(ring, [0, 2, 3])
        before = _snapshot(tmp_path)

        simulated = SimulateAdapter()
        sim_result = rotate(ring, simulated, max_generations=4)

        assert _snapshot(tmp_path) == before

        executed = ExecuteAdapter()
        exec_result = rotate(ring, executed, max_generations=4)

        assert simulated.actions == executed.actions
        assert sim_result == exec_result
