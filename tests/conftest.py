from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from canteen.core.config import Settings
from canteen.core.security import create_access_token, hash_password
from canteen.main import create_app
from canteen.models import Canteen, MenuCategory, MenuItem, User, UserRole
from canteen.services.access import Principal


PASSWORD = "secret123"


class FakeClock:
    """Deterministic timestamps: starts at local noon on a fixed day."""

    def __init__(self, day: date = date(2026, 1, 15)):
        self.day = day
        self.now = datetime.combine(day, time(12, 0)).astimezone().astimezone(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class Seed:
    east: int
    core: int
    closed: int
    coffee: int
    samosa: int
    biryani: int
    thali: int
    password: str = PASSWORD
    principals: dict[str, Principal] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)

    def auth(self, who: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.tokens[who]}"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        env_mode="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'canteen.db'}",
        jwt_secret="test-secret",
        password_hash_method="pbkdf2:sha256:1000",
        payment_provider="mock",
        mock_payment_failure_rate=0.0,
        mock_payment_latency=0.0,
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def session(app):
    async with app.state.database.session() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def seed(app, settings) -> Seed:
    async with app.state.database.session() as session:
        east = Canteen(name="East Canteen", code="EAST")
        core = Canteen(name="Core Canteen", code="CORE")
        closed = Canteen(name="Munch Box", code="MUNCH", active=False)
        session.add_all([east, core, closed])
        await session.flush()

        coffee = MenuItem(canteen_id=east.id, name="Filter Coffee", category=MenuCategory.BEVERAGES, price=20.0)
        samosa = MenuItem(canteen_id=east.id, name="Samosa", category=MenuCategory.SNACKS, price=15.0)
        biryani = MenuItem(
            canteen_id=east.id, name="Veg Biryani", category=MenuCategory.MEALS, price=90.0, available=False
        )
        thali = MenuItem(canteen_id=core.id, name="Mini Thali", category=MenuCategory.MEALS, price=80.0)

        password_hash = hash_password(settings, PASSWORD)
        users = {
            "student": User(
                name="Asha", email="asha@campus.edu", password_hash=password_hash, role=UserRole.STUDENT
            ),
            "staff": User(
                name="Prof. Rao", email="rao@campus.edu", password_hash=password_hash, role=UserRole.STAFF
            ),
            "admin": User(
                name="Admin", email="admin@campus.edu", password_hash=password_hash, role=UserRole.ADMIN
            ),
            "kitchen_east": User(
                name="East Kitchen",
                email="east@campus.edu",
                password_hash=password_hash,
                role=UserRole.KITCHEN,
                canteen_id=east.id,
            ),
            "kitchen_core": User(
                name="Core Kitchen",
                email="core@campus.edu",
                password_hash=password_hash,
                role=UserRole.KITCHEN,
                canteen_id=core.id,
            ),
        }
        session.add_all([coffee, samosa, biryani, thali, *users.values()])
        await session.commit()

        seed = Seed(
            east=east.id,
            core=core.id,
            closed=closed.id,
            coffee=coffee.id,
            samosa=samosa.id,
            biryani=biryani.id,
            thali=thali.id,
        )
        for key, user in users.items():
            seed.principals[key] = Principal(
                user_id=user.id,
                name=user.name,
                role=user.role,
                canteen_id=user.canteen_id,
                email=user.email,
            )
            seed.tokens[key] = create_access_token(settings, user.id, user.role)

    return seed
