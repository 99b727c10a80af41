"""Sequential item key generator.

Keys look like ``ALPHA-7``: the project key, a dash, and a number that grows
by one per item and is never handed out twice, even after deletions.
"""

from contextlib import asynccontextmanager

import structlog

from trackhub.repositories import ItemRepository, ProjectRepository
from trackhub.services.exceptions import NotFoundError, ValidationError
from trackhub.services.locks import KeyedLocks

logger = structlog.get_logger()


def parse_key(key: str) -> tuple[str, int]:
    """Split ``"ALPHA-12"`` into ``("ALPHA", 12)``."""
    prefix, sep, number = key.rpartition("-")
    if not sep or not prefix or not number.isdigit():
        raise ValidationError(f"Malformed item key '{key}'")
    return prefix, int(number)


def format_key(prefix: str, number: int) -> str:
    return f"{prefix}-{number}"


class SequentialKeyGenerator:
    """Sole writer of ``Project.item_sequence``."""

    def __init__(
        self,
        projects: ProjectRepository,
        items: ItemRepository,
        locks: KeyedLocks | None = None,
    ):
        self.projects = projects
        self.items = items
        self.locks = locks or KeyedLocks("item_keys")

    async def _highest_item_number(self, project_id: str) -> int:
        # Compared numerically; "ALPHA-10" sorts before "ALPHA-9" as text
        highest = 0
        for item in await self.items.find({"project_id": project_id}):
            try:
                _, number = parse_key(item.key)
            except ValidationError:
                logger.warning("unparseable_item_key", project_id=project_id, key=item.key)
                continue
            highest = max(highest, number)
        return highest

    @asynccontextmanager
    async def allocate(self, project_id: str):
        """Allocate the next key and keep the project's key lock while the
        caller stores the item.

        The new number is persisted before anything is yielded, so a caller
        that fails to insert its item burns the number rather than letting it
        be reissued. Project deletion takes the same lock, so an item is
        either stored before the deletion starts or finds the project gone.
        """
        async with self.locks(project_id):
            project = await self.projects.find_by_id(project_id)
            if project is None:
                raise NotFoundError("Project not found")

            number = max(project.item_sequence or 0, await self._highest_item_number(project_id)) + 1
            await self.projects.update(project_id, {"item_sequence": number})

            key = format_key(project.key, number)
            logger.debug("item_key_allocated", project_id=project_id, key=key)
            yield key

    async def next_key(self, project_id: str) -> str:
        """Allocate the next key for a project."""
        async with self.allocate(project_id) as key:
            return key
