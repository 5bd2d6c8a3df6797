from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
from pathlib import Path

from loguru import logger

from wirehead.chat.base import Channel, Post
from wirehead.exceptions import ChannelError


class DirectoryChannel(Channel):
    """Writes posted images to a directory and appends each post to ``messages.jsonl``.

    Button action tokens are logged so they can be pasted back into the CLI.
    """

    LOG_NAME = "messages.jsonl"

    def __init__(self, root: str | Path, name: str = "directory"):
        self.root = Path(root)
        self.name = name
        self._counter = 0
        self._lock = asyncio.Lock()

    async def send(self, post: Post) -> None:
        async with self._lock:
            self._counter += 1
            index = self._counter
        try:
            await asyncio.to_thread(self._write, index, post)
        except OSError as exc:
            raise ChannelError(f"cannot write post {index} to {self.root}: {exc}") from exc

        logger.info("[{}] #{} {}", self.name, index, post.content or "")
        for button in post.buttons:
            logger.info("[{}]   [{}] {}", self.name, button.label, button.action)

    def _write(self, index: int, post: Post) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        files = []
        for image_idx, image in enumerate(post.images):
            path = self.root / f"{index:05d}_{image_idx}_{image.filename}"
            path.write_bytes(image.data)
            files.append(path.name)

        record = {
            "index": index,
            "time": datetime.now(timezone.utc).isoformat(),
            "content": post.content,
            "files": files,
            "buttons": [
                {"label": b.label, "action": b.action, "style": b.style.value}
                for b in post.buttons
            ],
        }
        with (self.root / self.LOG_NAME).open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record) + "\n")
