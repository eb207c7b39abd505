import re
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from accessgate.adapters.dev_email import DevEmailAdapter
from accessgate.adapters.memory_store import InMemoryDocumentStore
from accessgate.api.main import create_app
from accessgate.app_shell.config import Settings
from accessgate.app_shell.context import AccessContext
from accessgate.domain.entities import ACCOUNTS_COLLECTION, AdminAccount
from accessgate.rules.loader import load_rules
from accessgate.rules.models import Rules

RULES_PATH = Path(__file__).resolve().parent.parent / "rules.yaml"
TEST_SECRET = "test-secret-key-0123456789abcdef"


class MockTimePort:
    """Mock time provider."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def set_now(self, now: datetime) -> None:
        self._now = now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


def code_from_email(email: DevEmailAdapter, recipient: str) -> str:
    """Pull the one-time code out of the last email sent to ``recipient``."""
    body = email.get_emails_to(recipient)[-1].body_text
    match = re.search(r"setup code is (\d+)", body)
    assert match, body
    return match.group(1)


def token_from_email(email: DevEmailAdapter, recipient: str) -> str:
    body = email.get_emails_to(recipient)[-1].body_text
    match = re.search(r"Token: (\S+)", body)
    assert match, body
    return match.group(1)


@pytest.fixture
def rules() -> Rules:
    """Real rules from the project root, with cheap PIN hashing."""
    loaded = load_rules(RULES_PATH)
    fast_lock = loaded.system_lock.model_copy(
        update={"hash_time_cost": 1, "hash_memory_cost_kib": 8, "hash_parallelism": 1}
    )
    return loaded.model_copy(update={"system_lock": fast_lock})


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        rules_path=RULES_PATH,
        secret_key=TEST_SECRET,
        secret_key_from_env=True,
    )


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def email() -> DevEmailAdapter:
    return DevEmailAdapter()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ctx(
    rules: Rules,
    settings: Settings,
    store: InMemoryDocumentStore,
    email: DevEmailAdapter,
    time_port: MockTimePort,
) -> Iterator[AccessContext]:
    """Fully wired context over an in-memory store; the reaper is not started."""
    context = AccessContext.create(rules, settings, store=store, email=email, clock=time_port)
    context.init(start_reaper=False)
    yield context
    context.teardown()


@pytest.fixture
def client(ctx: AccessContext) -> Iterator[TestClient]:
    with TestClient(create_app(ctx)) as test_client:
        yield test_client


@pytest.fixture
def read_code(email: DevEmailAdapter):
    return lambda recipient: code_from_email(email, recipient)


@pytest.fixture
def read_token(email: DevEmailAdapter):
    return lambda recipient: token_from_email(email, recipient)


@pytest.fixture
def admin_account(ctx: AccessContext) -> AdminAccount:
    now = ctx.clock.now_utc()
    account = AdminAccount(
        email="admin@capsera.com",
        display_name="Admin",
        password_hash="unused",
        created_at=now,
        updated_at=now,
    )
    ctx.store.insert_one(ACCOUNTS_COLLECTION, account.model_dump(mode="json"), unique_field="email")
    return account


@pytest.fixture
def admin_headers(ctx: AccessContext, admin_account: AdminAccount) -> dict[str, str]:
    return {"Authorization": f"Bearer {ctx.tokens.create_access_token(admin_account.id)}"}
