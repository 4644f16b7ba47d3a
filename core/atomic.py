"""
All-or-nothing scope over an execution environment.

Snapshots the environment on entry; any exception escaping the block reverts
every effect recorded since (balances, positions, pool reserves) and re-raises.
A clean exit releases the snapshot, committing the effects.

Usage:
    with atomic_unit(env):
        pair.swap(...)        # nested continuation runs inside the same unit
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from shared.interfaces import ExecutionEnvironment


@contextmanager
def atomic_unit(env: ExecutionEnvironment) -> Iterator[int]:
    snapshot_id = env.snapshot()
    try:
        yield snapshot_id
    except BaseException:
        env.revert(snapshot_id)
        raise
    else:
        env.release(snapshot_id)
