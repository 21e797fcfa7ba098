"""Execution mode adapters package.

Provides the ``ActionAdapter`` Protocol and its two implementations:
``ExecuteAdapter`` (perform every action) and ``SimulateAdapter`` (dry run,
describe every action).

Usage:
    from host_backup.adapters import ActionAdapter, ExecuteAdapter, SimulateAdapter
"""

from host_backup.adapters.base import ActionAdapter
from host_backup.adapters.execute import ExecuteAdapter
from host_backup.adapters.simulate import SimulateAdapter

__all__ = [
    "ActionAdapter",
    "ExecuteAdapter",
    "SimulateAdapter",
]
