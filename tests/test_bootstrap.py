# tests/test_bootstrap.py

from __future__ import annotations

import pytest

from tasksync.api.http_client import HttpApiClient
from tasksync.cli.bootstrap import create_initial_state
from tasksync.tasks.task_models import SessionState


@pytest.mark.asyncio
async def test_create_initial_state_wires_components(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        assert state.settings is settings
        assert len(state.resources) == 1
        assert isinstance(state.resources[0], HttpApiClient)
        assert state.board.session.state == SessionState.LOADING

        # No stored credential: start() must not touch the network.
        assert await state.board.start() == SessionState.ANONYMOUS
        assert not settings.credential_path.exists()
    finally:
        await state.aclose()


@pytest.mark.asyncio
async def test_create_initial_state_with_push(settings) -> None:
    settings.push_enabled = True
    state = create_initial_state(settings=settings)
    try:
        assert len(state.resources) == 2
        assert not state.board.channel.is_live
    finally:
        await state.aclose()
