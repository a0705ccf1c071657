from typing import AsyncGenerator, Dict, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.services import ensure_admin
from app.core.config import settings
from app.core.storage import FileStore, get_file_store
from app.db.session import create_tables, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


class InMemoryFileStore(FileStore):
    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}

    async def upload(self, path, data, content_type=None) -> str:
        self.objects[path] = data.read()
        return f"memory://{path}"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, shared by the app and the test body."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
def file_store() -> InMemoryFileStore:
    store = InMemoryFileStore()
    app.dependency_overrides[get_file_store] = lambda: store
    return store


@pytest.fixture()
async def client(db_session: AsyncSession, file_store: InMemoryFileStore) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def login(client: AsyncClient, email: str, password: Optional[str] = None) -> Dict[str, str]:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password or settings.default_password},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture()
async def admin_headers(client: AsyncClient, db_session: AsyncSession) -> Dict[str, str]:
    await ensure_admin(db_session)
    return await login(client, settings.admin_email)


@pytest.fixture()
async def bca(client: AsyncClient, admin_headers) -> dict:
    """BCA course with six semesters."""
    response = await client.post(
        "/api/v1/courses",
        json={"name": "Bachelor of Computer Applications", "code": "bca", "duration_years": 3, "total_semesters": 6},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    course = response.json()
    detail = await client.get(f"/api/v1/courses/{course['id']}", headers=admin_headers)
    course["semesters"] = {s["semester_number"]: s for s in detail.json()["semesters"]}
    return course


@pytest.fixture()
async def semester3(bca) -> dict:
    return bca["semesters"][3]


@pytest.fixture()
async def dbms(client: AsyncClient, admin_headers, semester3) -> dict:
    response = await client.post(
        "/api/v1/subjects",
        json={"semester_id": semester3["id"], "name": "DBMS", "code": "bca301", "credits": 4},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def provision(client: AsyncClient, headers, **payload):
    return await client.post("/api/v1/provisioning/users", json=payload, headers=headers)


@pytest.fixture()
async def teacher(client: AsyncClient, admin_headers, semester3, dbms) -> dict:
    """Teacher assigned to (Semester 3, DBMS), signed in."""
    response = await provision(
        client,
        admin_headers,
        email="teacher@bca.edu",
        full_name="Tara Teacher",
        role="teacher",
        employee_id="EMP001",
        department="Computer Science",
        semester_assignments=[{"semester_id": semester3["id"], "subject_id": dbms["id"]}],
    )
    assert response.status_code == 200, response.text
    data = response.json()
    data["headers"] = await login(client, "teacher@bca.edu")
    return data


@pytest.fixture()
async def student(client: AsyncClient, admin_headers, bca, semester3) -> dict:
    """Student enrolled in BCA Semester 3, signed in."""
    response = await provision(
        client,
        admin_headers,
        email="student@bca.edu",
        full_name="Sam Student",
        role="student",
        roll_number="BCA-001",
        course_id=bca["id"],
        current_semester_id=semester3["id"],
        enrollment_year=2023,
    )
    assert response.status_code == 200, response.text
    data = response.json()
    data["headers"] = await login(client, "student@bca.edu")
    return data


@pytest.fixture()
def login_as(client: AsyncClient):
    async def _login(email: str, password: Optional[str] = None) -> Dict[str, str]:
        return await login(client, email, password)

    return _login


@pytest.fixture()
def provision_user(client: AsyncClient, admin_headers):
    async def _provision(headers=None, **payload):
        return await provision(client, headers or admin_headers, **payload)

    return _provision
