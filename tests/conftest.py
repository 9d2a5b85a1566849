"""Shared fixtures."""

import pytest

from addonsync.application.cache import request_coalescer


@pytest.fixture(autouse=True)
def reset_process_coalescers(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test fresh process-wide coalescers.

    Their entries hold futures bound to the event loop of the test that created
    them, so a result shared across tests would also cross loops.
    """
    monkeypatch.setattr(request_coalescer, "_health_coalescer", None)
    monkeypatch.setattr(request_coalescer, "_manifest_coalescer", None)
