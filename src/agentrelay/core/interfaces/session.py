"""
Session Protocol

Sessions persist the ordered conversation history of a logical session id.
Implementations own whatever locking is needed to serialize writes.
"""

from typing import Protocol, runtime_checkable

from agentrelay.core.domain.items import ConversationItem


@runtime_checkable
class SessionProtocol(Protocol):
    """Capability interface for session storage."""

    @property
    def session_id(self) -> str:
        ...

    async def get_items(self, limit: int | None = None) -> list[ConversationItem]:
        """
        Return stored items in insertion order.

        Args:
            limit: If given, only the most recent ``limit`` items
        """
        ...

    async def add_items(self, items: list[ConversationItem]) -> None:
        """Append items, preserving their order."""
        ...

    async def pop_item(self) -> ConversationItem | None:
        """Remove and return the most recent item."""
        ...

    async def clear(self) -> None:
        """Remove all items of this session."""
        ...
