"""
tests/test_purge_loop.py -- The background expired-code purge in api/main.py.

Covers:
  - an exception from one purge pass is logged and the loop keeps running
  - cancellation still stops the loop
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from api.main import _purge_loop


def _app_with(purge) -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace(code_service=SimpleNamespace(purge_expired_codes=purge)))


def test_failed_pass_does_not_stop_the_loop(caplog):
    calls: list[int] = []

    def purge() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("disk full")
        return 0

    async def run() -> None:
        task = asyncio.create_task(_purge_loop(_app_with(purge), 0))
        for _ in range(200):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    with caplog.at_level("ERROR", logger="vaultauth"):
        asyncio.run(run())

    assert len(calls) >= 2
    assert "Expired code purge failed" in caplog.text
