# src/tasksync/core/state.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .board import TaskBoard

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Everything one running client owns.

    Created by cli.bootstrap (composition root); torn down with aclose().
    `resources` are adapters holding connections (HTTP client, push source).
    """

    settings: Any
    board: TaskBoard
    resources: tuple[Any, ...] = ()

    async def aclose(self) -> None:
        await self.board.close()
        for res in self.resources:
            closer = getattr(res, "aclose", None) or getattr(res, "disconnect", None)
            if closer is None:
                continue
            try:
                await closer()
            except Exception:
                logger.debug("Closing %s failed.", type(res).__name__, exc_info=True)
