"""
File-Based Session Storage
==========================

Persists the conversation history of a session as JSON lines, one
conversation item per line, under ``{work_dir}/{session_id}.jsonl``.

Writes to one session file are serialized with an asyncio.Lock shared by
every FileSession instance pointing at the same file, so concurrent runs
targeting the same session never interleave their segments.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import ClassVar

import aiofiles
import structlog

from agentrelay.core.domain.items import ConversationItem, item_from_dict

logger = structlog.get_logger()


class FileSession:
    """
    JSON-lines session store.

    Example:
        >>> session = FileSession("support-42", ".agentrelay/sessions")
        >>> await session.add_items([UserMessage("hi")])
        >>> items = await session.get_items()
    """

    _locks: ClassVar[dict[Path, asyncio.Lock]] = {}

    def __init__(self, session_id: str, work_dir: str | Path = ".agentrelay/sessions"):
        if not session_id or "/" in session_id or "\\" in session_id:
            raise ValueError(f"Invalid session id: {session_id!r}")
        self._session_id = session_id
        self.work_dir = Path(work_dir)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.work_dir / f"{session_id}.jsonl"
        self.logger = logger.bind(component="file_session", session_id=session_id)

    @property
    def session_id(self) -> str:
        return self._session_id

    def _get_lock(self) -> asyncio.Lock:
        key = self.path.resolve()
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def _read_all(self) -> list[ConversationItem]:
        if not self.path.exists():
            return []

        items: list[ConversationItem] = []
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            line_no = 0
            async for line in f:
                line_no += 1
                line = line.strip()
                if not line:
                    continue
                try:
                    items.append(item_from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    self.logger.warning(
                        "session.corrupt_line", line=line_no, error=str(e)
                    )
        return items

    async def _rewrite(self, items: list[ConversationItem]) -> None:
        """Replace the file contents atomically using temp file + rename."""
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.work_dir, suffix=".tmp", prefix=".session_"
        )
        os.close(temp_fd)
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                for item in items:
                    await f.write(json.dumps(item.to_dict(), ensure_ascii=False, default=str))
                    await f.write("\n")
            os.replace(temp_path, self.path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    async def get_items(self, limit: int | None = None) -> list[ConversationItem]:
        async with self._get_lock():
            items = await self._read_all()
        if limit is None:
            return items
        return items[-limit:] if limit > 0 else []

    async def add_items(self, items: list[ConversationItem]) -> None:
        if not items:
            return
        payload = "".join(
            json.dumps(item.to_dict(), ensure_ascii=False, default=str) + "\n"
            for item in items
        )
        async with self._get_lock():
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                await f.write(payload)
        self.logger.info("session.items_added", count=len(items))

    async def pop_item(self) -> ConversationItem | None:
        async with self._get_lock():
            items = await self._read_all()
            if not items:
                return None
            last = items.pop()
            await self._rewrite(items)
        self.logger.debug("session.item_popped", kind=last.kind.value)
        return last

    async def clear(self) -> None:
        async with self._get_lock():
            self.path.unlink(missing_ok=True)
        self.logger.info("session.cleared")

    @staticmethod
    def list_sessions(work_dir: str | Path = ".agentrelay/sessions") -> list[str]:
        """List session ids stored under ``work_dir``."""
        directory = Path(work_dir)
        if not directory.exists():
            return []
        return sorted(p.stem for p in directory.glob("*.jsonl"))
