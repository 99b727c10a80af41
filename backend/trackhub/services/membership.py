"""Project membership registry.

The only code path allowed to write ``Project.owner_id`` and
``Project.members``. Every mutation is a read-modify-write of the embedded
member list under a per-project lock, and re-checks that the owner is still
listed as a manager before returning.
"""

import structlog

from trackhub.db.base import utcnow
from trackhub.models import PROJECT_ROLES, Project
from trackhub.repositories import ProjectRepository, UserRepository
from trackhub.services.exceptions import (
    ConflictError,
    InvalidOperationError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from trackhub.services.locks import KeyedLocks

logger = structlog.get_logger()

OWNER_ROLE = "manager"


def member_entry(user_id: str, role: str) -> dict:
    return {"user_id": user_id, "role": role, "joined_at": utcnow().isoformat()}


def check_owner_invariant(project: Project) -> None:
    """Raise if the owner is missing from members, not a manager, or anyone is listed twice."""
    user_ids = project.member_ids()
    if len(user_ids) != len(set(user_ids)):
        raise InvariantViolationError(f"Project {project.id} lists a member more than once")

    entry = project.member_entry(project.owner_id)
    if entry is None or entry.get("role") != OWNER_ROLE:
        raise InvariantViolationError(
            f"Project {project.id} owner {project.owner_id} is not a manager member"
        )


def _validate_role(role: str) -> None:
    if role not in PROJECT_ROLES:
        raise ValidationError(
            "Invalid member role",
            errors=[f"role must be one of: {', '.join(PROJECT_ROLES)}"],
        )


class MembershipRegistry:
    def __init__(
        self,
        projects: ProjectRepository,
        users: UserRepository,
        locks: KeyedLocks | None = None,
    ):
        self.projects = projects
        self.users = users
        self.locks = locks or KeyedLocks("membership")

    @staticmethod
    def initial_members(owner_id: str) -> list[dict]:
        """Member list for a new project: the owner as its only manager."""
        return [member_entry(owner_id, OWNER_ROLE)]

    async def _load(self, project_id: str) -> Project:
        project = await self.projects.find_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def _save(self, project: Project, patch: dict) -> Project:
        updated = await self.projects.update(project.id, patch)
        if updated is None:
            raise NotFoundError("Project not found")
        check_owner_invariant(updated)
        return updated

    async def add_member(self, project_id: str, user_id: str, role: str = "developer") -> Project:
        _validate_role(role)

        async with self.locks(project_id):
            project = await self._load(project_id)

            user = await self.users.find_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")

            if project.owner_id == user_id or project.member_entry(user_id) is not None:
                raise ConflictError("User is already a member of this project")

            members = list(project.members or [])
            members.append(member_entry(user_id, role))
            updated = await self._save(project, {"members": members})

        logger.info("member_added", project_id=project_id, user_id=user_id, role=role)
        return updated

    async def remove_member(self, project_id: str, user_id: str) -> bool:
        """Remove a non-owner member. Returns False when the user was not a member."""
        async with self.locks(project_id):
            project = await self._load(project_id)

            if project.owner_id == user_id:
                raise InvalidOperationError("Cannot remove the project owner")

            members = [m for m in project.members or [] if m.get("user_id") != user_id]
            if len(members) == len(project.members or []):
                return False

            await self._save(project, {"members": members})

        logger.info("member_removed", project_id=project_id, user_id=user_id)
        return True

    async def update_member_role(self, project_id: str, user_id: str, role: str) -> Project:
        async with self.locks(project_id):
            project = await self._load(project_id)

            if project.owner_id == user_id:
                raise InvalidOperationError("Cannot change the role of the project owner")

            if project.member_entry(user_id) is None:
                raise NotFoundError("User is not a member of this project")

            _validate_role(role)

            members = [
                {**m, "role": role} if m.get("user_id") == user_id else dict(m)
                for m in project.members or []
            ]
            updated = await self._save(project, {"members": members})

        logger.info("member_role_updated", project_id=project_id, user_id=user_id, role=role)
        return updated

    async def transfer_ownership(self, project_id: str, new_owner_id: str) -> Project:
        """Make ``new_owner_id`` the owner and drop the former owner from members.

        The new owner keeps their existing entry, promoted to manager, or is
        appended when they were not a member.
        """
        async with self.locks(project_id):
            project = await self._load(project_id)
            previous_owner_id = project.owner_id
            if previous_owner_id == new_owner_id:
                return project

            members = []
            for m in project.members or []:
                if m.get("user_id") == previous_owner_id:
                    continue
                if m.get("user_id") == new_owner_id:
                    members.append({**m, "role": OWNER_ROLE})
                else:
                    members.append(dict(m))
            if not any(m.get("user_id") == new_owner_id for m in members):
                members.append(member_entry(new_owner_id, OWNER_ROLE))

            updated = await self._save(project, {"owner_id": new_owner_id, "members": members})

        logger.info(
            "ownership_transferred",
            project_id=project_id,
            previous_owner_id=previous_owner_id,
            new_owner_id=new_owner_id,
        )
        return updated
