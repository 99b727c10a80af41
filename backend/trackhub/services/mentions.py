"""@mention extraction and resolution."""

import re

import structlog

from trackhub.repositories import ProjectRepository, UserRepository

logger = structlog.get_logger()

MENTION_PATTERN = re.compile(r"@(\w+)")


def extract_mentions(text: str | None) -> set[str]:
    """Return the usernames mentioned as ``@name`` in text."""
    if not text:
        return set()
    return set(MENTION_PATTERN.findall(text))


class MentionResolver:
    """Turns mentioned usernames into user ids of people in the project."""

    def __init__(self, users: UserRepository, projects: ProjectRepository):
        self.users = users
        self.projects = projects

    async def resolve_mentions(self, usernames: set[str], project_id: str) -> set[str]:
        if not usernames:
            return set()

        project = await self.projects.find_by_id(project_id)
        if project is None:
            return set()

        users = await self.users.find_by_usernames(usernames)
        resolved = {user.id for user in users if project.has_access(user.id)}

        dropped = len(usernames) - len(resolved)
        if dropped:
            logger.debug("mentions_dropped", project_id=project_id, count=dropped)
        return resolved

    async def resolve_text(self, text: str, project_id: str) -> list[str]:
        """Extract and resolve in one go; ids come back sorted for stable storage."""
        return sorted(await self.resolve_mentions(extract_mentions(text), project_id))
