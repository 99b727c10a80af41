import pytest

from trackhub.config import Settings
from trackhub.models import Project, User
from trackhub.services.container import Container

from fakes import (
    as_actor,
    InMemoryCommentRepository,
    InMemoryItemRepository,
    InMemoryProjectRepository,
    InMemoryTagRepository,
    InMemoryUserRepository,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key",
        seed_default_tags=False,
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
    )


@pytest.fixture
def container(settings: Settings) -> Container:
    """Fully wired services over in-memory repositories."""
    return Container.from_repositories(
        settings,
        users=InMemoryUserRepository(),
        projects=InMemoryProjectRepository(),
        items=InMemoryItemRepository(),
        tags=InMemoryTagRepository(),
        comments=InMemoryCommentRepository(),
    )


@pytest.fixture
def make_user(container: Container):
    async def _make_user(username: str, role: str = "developer") -> User:
        return await container.user_service.create_user(
            {
                "username": username,
                "email": f"{username}@example.com",
                "password": "correct-horse",
                "role": role,
            }
        )

    return _make_user


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user("admin", role="admin")


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user("carol", role="viewer")


@pytest.fixture
async def project(container: Container, alice: User, bob: User, carol: User) -> Project:
    """ALPHA: owned by alice, bob is a developer, carol a viewer."""
    project = await container.project_service.create_project(
        as_actor(alice), {"name": "Alpha", "key": "alpha"}
    )
    await container.registry.add_member(project.id, bob.id, "developer")
    return await container.registry.add_member(project.id, carol.id, "viewer")
