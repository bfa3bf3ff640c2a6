"""
Pytest fixtures for candleworks backend tests.

Provides the Flask app on in-memory SQLite, per-test table wipe, test client,
and an engine over in-memory repositories driven by a fixed clock.
"""

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from candleworks import create_app
from candleworks.domain import BomLine, Customer, Material, Product, Settings
from candleworks.engine import Engine
from candleworks.extensions import db
from candleworks.repositories import MemoryRepositories
from candleworks.time_utils import FixedClock

# A Friday in March; customers born in March get the birthday discount
NOW = datetime(2024, 3, 15, 12, 0, 0)

MAKE_TO_ORDER_PATTERN = r"\b(kit|custom)\b"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ENGINE_CLOCK': FixedClock(NOW),
        'LOW_STOCK_THRESHOLD': 10,
        'BIRTHDAY_DISCOUNT_PERCENT': '10',
        'JAR_DISCOUNT_PER_UNIT': '2',
        'MAKE_TO_ORDER_PATTERN': MAKE_TO_ORDER_PATTERN,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def clock():
    return FixedClock(NOW)


@pytest.fixture(scope='function')
def repos():
    """In-memory repositories with birthday 10% and R$2 per returned jar."""
    repos = MemoryRepositories()
    repos.settings.save(Settings(
        low_stock_threshold=10,
        birthday_discount_percent=Decimal("10"),
        jar_discount_per_unit=Decimal("2"),
    ))
    return repos


@pytest.fixture(scope='function')
def engine(repos, clock):
    return Engine(repos, clock=clock, make_to_order_pattern=MAKE_TO_ORDER_PATTERN)


def seed_catalog(engine: Engine) -> SimpleNamespace:
    """
    Two materials, three products and three customers.

    lavender: 5 on hand, R$10, 0.2kg wax + 1 wick per unit
    vanilla:  8 on hand, R$25, 0.3kg wax + 1 wick per unit
    kit:      2 on hand, R$40 (make to order, no recipe)
    """
    wax = engine.add_material(Material(
        id=None, name="Soy wax", unit="kg",
        current_stock=Decimal("2"), low_stock_alert=Decimal("5"), cost_per_unit=Decimal("30"),
    ))
    wick = engine.add_material(Material(
        id=None, name="Cotton wick", unit="un",
        current_stock=Decimal("100"), low_stock_alert=Decimal("20"), cost_per_unit=Decimal("0.5"),
    ))

    def recipe(wax_kg: str):
        return [
            BomLine(wax.id, wax.name, wax.unit, Decimal(wax_kg), wax.cost_per_unit),
            BomLine(wick.id, wick.name, wick.unit, Decimal("1"), wick.cost_per_unit),
        ]

    lavender = engine.add_product(Product(
        id=None, name="Lavender candle", price=Decimal("10"), quantity=5,
        category="Aromatic", bill_of_materials=recipe("0.2"),
    ))
    vanilla = engine.add_product(Product(
        id=None, name="Vanilla candle", price=Decimal("25"), quantity=8,
        category="aromatic", bill_of_materials=recipe("0.3"),
    ))
    kit = engine.add_product(Product(
        id=None, name="Gift kit", price=Decimal("40"), quantity=2, category="Kits",
    ))

    ana = engine.add_customer(Customer(id=None, name="Ana", birth_month=3, birth_day=20, jar_credits=4))
    bruno = engine.add_customer(Customer(id=None, name="Bruno", birth_month=7, birth_day=1))
    carla = engine.add_customer(Customer(id=None, name="Carla", birth_month=3, birth_day=2, jar_credits=10))

    return SimpleNamespace(
        wax=wax, wick=wick,
        lavender=lavender, vanilla=vanilla, kit=kit,
        ana=ana, bruno=bruno, carla=carla,
    )


@pytest.fixture(scope='function')
def catalog(engine):
    return seed_catalog(engine)


@pytest.fixture(scope='function')
def sql_engine(db_session, clock):
    from candleworks.repositories.sql import SqlRepositories

    return Engine(SqlRepositories(), clock=clock, make_to_order_pattern=MAKE_TO_ORDER_PATTERN)


@pytest.fixture(scope='function')
def sql_catalog(sql_engine):
    """The seed catalog committed to the test database."""
    return seed_catalog(sql_engine)
