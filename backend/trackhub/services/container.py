"""Wiring of repositories, core components and services.

Built once at startup and handed to the HTTP layer through ``app.state``.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trackhub.config import Settings
from trackhub.repositories import (
    CommentRepository,
    ItemRepository,
    ProjectRepository,
    SqlAlchemyCommentRepository,
    SqlAlchemyItemRepository,
    SqlAlchemyProjectRepository,
    SqlAlchemyTagRepository,
    SqlAlchemyUserRepository,
    TagRepository,
    UserRepository,
)
from trackhub.services.access_control import AccessPolicy
from trackhub.services.auth import AuthService
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.comments import CommentService
from trackhub.services.identity import IdentityService
from trackhub.services.items import ItemService
from trackhub.services.keygen import SequentialKeyGenerator
from trackhub.services.membership import MembershipRegistry
from trackhub.services.mentions import MentionResolver
from trackhub.services.passwords import PasswordService
from trackhub.services.projects import ProjectService
from trackhub.services.tags import TagService
from trackhub.services.users import UserService


@dataclass
class Container:
    settings: Settings

    users: UserRepository
    projects: ProjectRepository
    items: ItemRepository
    tags: TagRepository
    comments: CommentRepository

    identity: IdentityService
    policy: AccessPolicy
    registry: MembershipRegistry
    keygen: SequentialKeyGenerator
    mentions: MentionResolver
    cascade: CascadeCoordinator
    passwords: PasswordService

    project_service: ProjectService
    item_service: ItemService
    tag_service: TagService
    comment_service: CommentService
    user_service: UserService
    auth_service: AuthService

    @classmethod
    def from_repositories(
        cls,
        settings: Settings,
        *,
        users: UserRepository,
        projects: ProjectRepository,
        items: ItemRepository,
        tags: TagRepository,
        comments: CommentRepository,
    ) -> "Container":
        policy = AccessPolicy(projects, items, tags, comments)
        identity = IdentityService(settings, users)
        passwords = PasswordService(settings)
        registry = MembershipRegistry(projects, users)
        keygen = SequentialKeyGenerator(projects, items)
        mentions = MentionResolver(users, projects)
        cascade = CascadeCoordinator(
            users, projects, items, tags, comments, registry, project_locks=keygen.locks
        )
        user_service = UserService(settings, users, cascade, passwords)

        return cls(
            settings=settings,
            users=users,
            projects=projects,
            items=items,
            tags=tags,
            comments=comments,
            identity=identity,
            policy=policy,
            registry=registry,
            keygen=keygen,
            mentions=mentions,
            cascade=cascade,
            passwords=passwords,
            project_service=ProjectService(
                settings, projects, users, items, tags, comments, policy, registry, cascade
            ),
            item_service=ItemService(settings, items, tags, policy, keygen, cascade),
            tag_service=TagService(settings, tags, items, policy, cascade),
            comment_service=CommentService(settings, comments, policy, mentions),
            user_service=user_service,
            auth_service=AuthService(settings, users, user_service, identity, passwords),
        )

    @classmethod
    def from_session_factory(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> "Container":
        return cls.from_repositories(
            settings,
            users=SqlAlchemyUserRepository(session_factory),
            projects=SqlAlchemyProjectRepository(session_factory),
            items=SqlAlchemyItemRepository(session_factory),
            tags=SqlAlchemyTagRepository(session_factory),
            comments=SqlAlchemyCommentRepository(session_factory),
        )
