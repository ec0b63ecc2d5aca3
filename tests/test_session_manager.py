import asyncio

import pytest

from online_exam.errors import IdentityNotFound
from online_exam.services.session_manager import SessionManager, SessionNotFound

from conftest import PRINCIPAL


@pytest.mark.asyncio
async def test_concurrent_opens_share_one_engine(backend):
    manager = SessionManager(backend_factory=lambda: backend)
    gate = asyncio.Event()
    backend.gates[1] = gate

    first = asyncio.create_task(manager.open(PRINCIPAL))
    await asyncio.sleep(0)
    second = asyncio.create_task(manager.open(PRINCIPAL.upper()))
    await asyncio.sleep(0)
    gate.set()
    first_engine, second_engine = await asyncio.gather(first, second)

    assert first_engine is second_engine
    assert manager.get(PRINCIPAL) is first_engine
    assert list(manager.active_sessions) == [PRINCIPAL]
    assert first_engine.progress().total == 3


@pytest.mark.asyncio
async def test_failed_open_is_not_registered(backend):
    manager = SessionManager(backend_factory=lambda: backend)
    with pytest.raises(IdentityNotFound):
        await manager.open("ghost@school.com")
    with pytest.raises(SessionNotFound):
        manager.get("ghost@school.com")
    assert manager.active_sessions == {}
