"""
All-or-nothing application of multi-document writes

Some operations touch two documents that must agree with each other
(project approval + owner XP, group.adminId + admin.groupId, group soft delete
+ member cascade). They are expressed as a list of steps and committed
through ConsistentUpdate:

* MONGO_USE_TRANSACTIONS=true: every step runs inside one session transaction
  (requires a replica set), so readers see all writes or none.
* otherwise: steps run in order; when one fails, the undo of every step
  already applied runs in reverse order and the original error propagates.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from app import config

logger = logging.getLogger(__name__)

ApplyFn = Callable[[Any], Awaitable[Any]]
UndoFn = Callable[[], Awaitable[Any]]


def session_kwargs(session) -> Dict[str, Any]:
    """Only forward a session when there is one"""
    return {"session": session} if session is not None else {}


class ConsistentUpdate:
    def __init__(self, db: AsyncIOMotorDatabase, label: str):
        self.db = db
        self.label = label
        self._steps: List[Tuple[ApplyFn, Optional[UndoFn]]] = []

    def add(self, apply: ApplyFn, undo: Optional[UndoFn] = None) -> "ConsistentUpdate":
        """
        apply(session) performs the write; undo() reverses it when a later
        step fails and no transaction is available
        """
        self._steps.append((apply, undo))
        return self

    async def commit(self):
        if config.MONGO_USE_TRANSACTIONS:
            await self._commit_in_transaction()
        else:
            await self._commit_with_compensation()

    async def _commit_in_transaction(self):
        async with await self.db.client.start_session() as session:
            async with session.start_transaction():
                for apply, _ in self._steps:
                    await apply(session)

    async def _commit_with_compensation(self):
        applied: List[Optional[UndoFn]] = []
        try:
            for apply, undo in self._steps:
                await apply(None)
                applied.append(undo)
        except Exception:
            logger.error(
                f"{self.label}: step {len(applied) + 1}/{len(self._steps)} failed, "
                f"reverting {len(applied)} applied step(s)"
            )
            for undo in reversed(applied):
                if undo is None:
                    continue
                try:
                    await undo()
                except Exception:
                    logger.exception(f"{self.label}: compensation step failed")
            raise
