from __future__ import annotations

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # Session uses asyncio primitives directly (create_task, Event).
    return "asyncio"
