"""Generation ring management.

A host's backups live in numbered directories under
``<backup_root>/<hostname>/``: ``0`` is the newest (or in-progress)
generation and higher numbers are older. Rotation ages every generation by
one slot and leaves an empty ``0`` for the new backup.

Usage:
    from host_backup.backup.ring import host_ring_path, current_depth, rotate

    ring = host_ring_path(config, "web17")
    current_depth(ring)
    # 6
    result = rotate(ring, adapter, max_generations=config.generations)
    result.incremental
    # True
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from host_backup.adapters.base import ActionAdapter
from host_backup.backup.models import BackupError, RotationResult, Stage
from host_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


class RotationError(BackupError):
    """Raised when a delete, rename or mkdir of the ring fails.

    The ring may be left sparse; the next run's scan and the sparse-slot
    handling in ``rotate()`` bring it back to a contiguous state.
    """

    stage: Stage = "rotation"


@dataclass(frozen=True, order=True)
class Generation:
    """Typed generation index, ordered numerically (``2 < 10``)."""

    index: int

    @classmethod
    def from_name(cls, name: str) -> "Generation | None":
        """Parse a directory name, None for anything that is not all digits."""
        if not name.isascii() or not name.isdigit():
            return None
        return cls(int(name))

    @property
    def name(self) -> str:
        return str(self.index)

    def path(self, ring_path: Path) -> Path:
        return ring_path / self.name


def host_ring_path(config: BackupConfig, hostname: str) -> Path:
    """Ring directory for a host: ``<backup_root>/<hostname>``."""
    return config.backup_root / hostname


def list_generations(ring_path: Path) -> list[Generation]:
    """Generation directories present in the ring, oldest last.

    Non-numeric entries and plain files are ignored.
    """
    if not ring_path.is_dir():
        return []
    generations = []
    for child in ring_path.iterdir():
        gen = Generation.from_name(child.name)
        if gen is not None and child.is_dir():
            generations.append(gen)
    return sorted(generations)


def current_depth(ring_path: Path) -> int | None:
    """Highest generation index, or None when the ring does not exist yet."""
    generations = list_generations(ring_path)
    if not generations:
        return None
    return generations[-1].index


def rotate(
    ring_path: Path,
    adapter: ActionAdapter,
    max_generations: int | None = None,
) -> RotationResult:
    """Age the ring by one slot and allocate an empty generation 0.

    Steps, in order:

    1. Delete every generation at or above the new top slot (normally the
       single oldest one). Deleting first keeps disk usage at the ring's
       size instead of one generation more.
    2. From the top slot down to 1, rename ``i-1`` to ``i``. A missing
       ``i-1`` (sparse ring) gets an empty ``i`` instead, keeping the ring
       contiguous.
    3. Create generation 0.

    The top slot is the current depth when ``max_generations`` is None
    (the ring keeps the size its directories give it), otherwise
    ``min(depth + 1, max_generations)`` so the ring grows until the cap.

    Args:
        ring_path: ``<backup_root>/<hostname>``.
        adapter: Execution mode adapter that performs or records each step.
        max_generations: Highest generation index to keep, None for a fixed
            ring.

    Returns:
        RotationResult, ``incremental`` is True when a generation 1 exists
        after rotation.

    Raises:
        RotationError: If any filesystem step fails. Nothing is skipped.
    """
    try:
        generations = list_generations(ring_path)
    except OSError as e:
        raise RotationError(f"Cannot scan {ring_path}: {e}") from e
    present = {g.index for g in generations}

    if not generations:
        logger.info("Rotation for %s: ring was not existing", ring_path.name)
        _step(adapter.mkdir, Generation(0).path(ring_path))
        return RotationResult(previous_depth=None, depth=0, incremental=False)

    depth = generations[-1].index
    if max_generations is None:
        top = depth
    else:
        top = min(depth + 1, max_generations)

    progress: list[str] = []
    deleted: list[int] = []
    for gen in reversed(generations):
        if gen.index < top:
            break
        progress.append(f"d{gen.index}")
        _step(adapter.delete, gen.path(ring_path))
        deleted.append(gen.index)

    for index in range(top, 0, -1):
        src = Generation(index - 1).path(ring_path)
        dst = Generation(index).path(ring_path)
        progress.append(str(index - 1))
        if index - 1 in present:
            _step(adapter.rename, src, dst)
        else:
            logger.warning("Generation %s is missing, creating an empty %s", src, dst)
            _step(adapter.mkdir, dst)

    _step(adapter.mkdir, Generation(0).path(ring_path))
    logger.info("Rotation for %s: %s", ring_path.name, " ".join(progress) or "-")

    return RotationResult(
        previous_depth=depth,
        depth=top,
        incremental=top > 0,
        deleted=deleted,
    )


def _step(action, *paths: Path) -> None:
    """Run one adapter action, converting filesystem errors to RotationError."""
    try:
        action(*paths)
    except OSError as e:
        names = " -> ".join(str(p) for p in paths)
        verb = getattr(action, "__name__", "action")
        raise RotationError(f"{verb} failed for {names}: {e}") from e
