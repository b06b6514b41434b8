"""Shared fixtures: in-memory database, seeded tenants, fake HTTP edges and an API client."""
import io
import json
from types import SimpleNamespace

import httpx
import pytest
from PIL import Image
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from baseplate import models
from baseplate.access import context_for_user
from baseplate.auth import create_access_token
from baseplate.seed import seed_catalogs
from catalog import roles
from edge.client import FunctionsClient
from edge.realtime import RealtimeBroadcaster


def png_bytes(width: int = 8, height: int = 6) -> bytes:
    """A tiny real PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class BroadcastRecorder:
    """Mock transport handler that keeps every broadcast message."""

    def __init__(self) -> None:
        self.messages = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(500, json={"error": "down"})
        self.messages.extend(json.loads(request.content)["messages"])
        return httpx.Response(202)

    def on(self, topic: str) -> list:
        return [m for m in self.messages if m["topic"] == topic]


class FunctionsStub:
    """Mock transport handler routing ``/functions/v1/<name>`` to canned responses."""

    def __init__(self) -> None:
        self.handlers = {}
        self.calls = []

    def reply(self, name: str, handler) -> None:
        """``handler`` is a response, a JSON body, or a callable taking the payload."""
        self.handlers[name] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content) if request.content else None
        self.calls.append((name, payload))
        handler = self.handlers.get(name)
        if handler is None:
            return httpx.Response(404, json={"error": f"no function {name}"})
        if callable(handler):
            handler = handler(payload)
        if isinstance(handler, httpx.Response):
            return handler
        return httpx.Response(200, json=handler)

    def payloads(self, name: str) -> list:
        return [payload for called, payload in self.calls if called == name]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def world(session):
    """Two customers with users of every role.

    acme: alice (customer_admin, owner), bob (customer_user)
    globex: carol (customer_user)
    no customer: admin (system_admin), cs (customer_success, assigned to acme)
    """
    await seed_catalogs(session)
    role_ids = {role.name: role.id for role in (await session.execute(select(models.Role))).scalars()}

    acme = models.Customer(name="Acme", domain="acme.test")
    globex = models.Customer(name="Globex", domain="globex.test")
    session.add_all([acme, globex])
    await session.flush()

    def user(email, role, customer=None, **extra):
        return models.User(
            email=email,
            first_name=email.split("@")[0].title(),
            customer_id=customer.id if customer else None,
            role_id=role_ids[role],
            **extra,
        )

    admin = user("admin@baseplate.test", roles.SYSTEM_ADMIN)
    cs = user("cs@baseplate.test", roles.CUSTOMER_SUCCESS)
    alice = user("alice@acme.test", roles.CUSTOMER_ADMIN, acme, auth_user_id="auth-alice")
    bob = user("bob@acme.test", roles.CUSTOMER_USER, acme)
    carol = user("carol@globex.test", roles.CUSTOMER_USER, globex)
    session.add_all([admin, cs, alice, bob, carol])
    await session.flush()

    acme.owner_user_id = alice.id
    session.add(models.CustomerSuccessOwnedCustomer(user_id=cs.id, customer_id=acme.id))
    await session.commit()
    # Load each user with its role so contexts can be built outside a query
    stmt = select(models.User).execution_options(populate_existing=True)
    (await session.execute(stmt)).unique().scalars().all()
    # Detached copies survive rollbacks inside the tests
    session.expunge_all()

    return SimpleNamespace(
        acme=acme,
        globex=globex,
        admin=admin,
        cs=cs,
        alice=alice,
        bob=bob,
        carol=carol,
        ctx=context_for_user,
    )


@pytest.fixture
def recorder():
    return BroadcastRecorder()


@pytest.fixture
async def broadcaster(recorder):
    broadcaster = RealtimeBroadcaster(
        "http://realtime.test/api/broadcast",
        "realtime-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(recorder)),
        enabled=True,
    )
    yield broadcaster
    await broadcaster.aclose()


@pytest.fixture
def functions():
    return FunctionsStub()


@pytest.fixture
async def functions_client(functions):
    client = FunctionsClient(
        "http://functions.test",
        "service-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(functions)),
        max_attempts=3,
        backoff=0,
    )
    yield client
    await client.aclose()


@pytest.fixture
def storage(tmp_path):
    from baseplate.storage import LocalStorage

    return LocalStorage(tmp_path / "screenshots")


@pytest.fixture
def triggered():
    """Segment ids handed to the background trigger."""
    return []


@pytest.fixture
async def client(session_factory, world, broadcaster, functions_client, storage, triggered):
    from baseplate.api import app
    from baseplate.db import get_session, get_session_factory
    from baseplate.deps import get_segment_trigger

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_segment_trigger] = lambda: triggered.append
    app.state.broadcaster = broadcaster
    app.state.functions_client = functions_client
    app.state.storage = storage

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://api.test") as http:
        yield http
    app.dependency_overrides.clear()


def auth_headers(user, **extra) -> dict:
    headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
    headers.update(extra)
    return headers


@pytest.fixture
def headers():
    return auth_headers
