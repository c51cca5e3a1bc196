"""In-memory session storage, mainly for tests and short-lived processes."""

import asyncio

import structlog

from agentrelay.core.domain.items import ConversationItem


class InMemorySession:
    """Session keeping its items in a list guarded by an asyncio.Lock."""

    def __init__(self, session_id: str):
        self._session_id = session_id
        self._items: list[ConversationItem] = []
        self._lock = asyncio.Lock()
        self.logger = structlog.get_logger().bind(
            component="memory_session", session_id=session_id
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    async def get_items(self, limit: int | None = None) -> list[ConversationItem]:
        async with self._lock:
            if limit is None:
                return list(self._items)
            return list(self._items[-limit:]) if limit > 0 else []

    async def add_items(self, items: list[ConversationItem]) -> None:
        async with self._lock:
            self._items.extend(items)
        self.logger.debug("session.items_added", count=len(items))

    async def pop_item(self) -> ConversationItem | None:
        async with self._lock:
            return self._items.pop() if self._items else None

    async def clear(self) -> None:
        async with self._lock:
            self._items.clear()
