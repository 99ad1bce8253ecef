"""
Test fixtures - in-memory SQLite database + authenticated HTTP client
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from cuisine_api.database import Base, get_db
from cuisine_api.main import app
from cuisine_api.api.auth import get_password_hash, create_access_token
from cuisine_api.models.dish import Dish
from cuisine_api.services.seed_gate import SeedState, seed_gate


@pytest.fixture(autouse=True)
def seed_gate_done():
    """Tests bring their own data, so the lazy CSV import starts out done.

    Seeding tests call ``seed_gate.reset()`` themselves.
    """
    seed_gate.reset()
    seed_gate.state = SeedState.DONE
    yield
    seed_gate.reset()


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Insert a dish that can log in"""
    dish = Dish(
        name="Test Dish",
        ingredients=["sugar", "milk"],
        course="dessert",
        flavor_profile="sweet",
        password_hash=get_password_hash("testpass123"),
    )
    db_session.add(dish)
    await db_session.commit()

    return {"dish": dish}


def _bearer(dish_id: str = "0" * 32, name: str = "Test Dish") -> str:
    token = create_access_token(data={"id": dish_id, "name": name})
    return f"Bearer {token}"


async def _make_client(db_session, authorization=None):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    ac = AsyncClient(transport=transport, base_url="http://test", follow_redirects=True)
    if authorization:
        ac.headers["Authorization"] = authorization
    return ac


@pytest_asyncio.fixture()
async def client(db_session, seed_data):
    """Authenticated httpx AsyncClient, token issued for the seeded dish"""
    dish = seed_data["dish"]
    ac = await _make_client(db_session, _bearer(dish.id, dish.name))
    async with ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def empty_client(db_session):
    """Authenticated client over an empty store (token only, no dish rows)"""
    ac = await _make_client(db_session, _bearer())
    async with ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(db_session):
    """Unauthenticated httpx AsyncClient"""
    ac = await _make_client(db_session)
    async with ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def add_dish(db_session):
    """Factory inserting a dish straight into the test database"""

    async def _add(name, ingredients=(), **fields):
        dish = Dish(name=name, ingredients=list(ingredients), **fields)
        db_session.add(dish)
        await db_session.commit()
        return dish

    return _add


@pytest.fixture()
def dataset_csv(tmp_path):
    """Write a small dish CSV and return its path"""
    path = tmp_path / "indian_food.csv"
    path.write_text(
        "name,ingredients,diet,prep_time,cook_time,flavor_profile,course,state,region\n"
        'Balu shahi,"Maida flour, yogurt, oil, sugar",vegetarian,45,25,sweet,dessert,West Bengal,East\n'
        'Kaju katli,"Cashews, ghee, cardamom, sugar",vegetarian,10,20,sweet,dessert,-1,-1\n'
        'Idli,"urad dal, rice",vegetarian,360,-1,,main course,Tamil Nadu,\n'
        ',"no, name",vegetarian,1,1,sweet,snack,Goa,West\n',
        encoding="utf-8",
    )
    return path
