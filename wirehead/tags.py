from __future__ import annotations

from collections.abc import Iterable, Sequence
from importlib import resources
from pathlib import Path

import httpx
from loguru import logger

from wirehead.exceptions import TagTableError
from wirehead.genome import MAX_GENE_COUNT, decode_phenotype

__all__ = ["TagTable", "PromptTemplate", "load_tag_table", "DEFAULT_TAGS_RESOURCE"]

DEFAULT_TAGS_RESOURCE = "default_tags.txt"
COMMENT_PREFIX = "//"


class TagTable(Sequence[str]):
    """Immutable, ordered vocabulary that genes index into."""

    def __init__(self, tags: Iterable[str], source: str = "<memory>"):
        self._tags: tuple[str, ...] = tuple(tags)
        self.source = source
        if not self._tags:
            raise TagTableError(f"tag table from {source} is empty")
        if len(self._tags) > MAX_GENE_COUNT:
            raise TagTableError(
                f"tag table from {source} has {len(self._tags)} tags, limit is {MAX_GENE_COUNT}"
            )

    @classmethod
    def from_text(cls, text: str, source: str = "<memory>") -> TagTable:
        """One tag per line; blank lines and ``//`` comments are skipped."""
        tags = [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.strip().startswith(COMMENT_PREFIX)
        ]
        return cls(tags, source=source)

    @classmethod
    def default(cls) -> TagTable:
        text = (
            resources.files("wirehead.resources")
            .joinpath(DEFAULT_TAGS_RESOURCE)
            .read_text(encoding="utf-8")
        )
        return cls.from_text(text, source=f"bundled:{DEFAULT_TAGS_RESOURCE}")

    def __getitem__(self, index):
        return self._tags[index]

    def __len__(self) -> int:
        return len(self._tags)

    def __repr__(self) -> str:
        return f"TagTable(source={self.source!r}, size={len(self)})"


async def load_tag_table(
    source: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> TagTable:
    """Load a tag table from a URL, a local file, or the bundled default.

    Raises:
        TagTableError: if the source cannot be read or yields no tags.
    """
    if not source:
        table = TagTable.default()
    elif source.startswith(("http://", "https://")):
        table = await _fetch(source, client=client, timeout=timeout)
    else:
        path = Path(source).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TagTableError(f"cannot read tag file {path}: {exc}") from exc
        table = TagTable.from_text(text, source=str(path))

    logger.info("[TagTable] Loaded {} tags from {}", len(table), table.source)
    return table


async def _fetch(
    url: str, *, client: httpx.AsyncClient | None, timeout: float
) -> TagTable:
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise TagTableError(f"failed to fetch tags from {url}: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()
    return TagTable.from_text(response.text, source=url)


class PromptTemplate:
    """Binds a tag table with the session's fixed prefix and suffix."""

    def __init__(self, tags: TagTable, prefix: str | None = None, suffix: str | None = None):
        self.tags = tags
        self.prefix = prefix
        self.suffix = suffix

    def render(self, genome: Sequence[int]) -> str:
        return decode_phenotype(genome, self.tags, self.prefix, self.suffix)
