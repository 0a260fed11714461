"""
Shared fixtures: a throwaway SQLite inventory database plus helpers to seed
products and depletion history.
"""
import os
from datetime import datetime, timedelta

import pytest

# keep the module-level engine off the production database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from db.models import Base, Product, InventoryTransaction
from db.usage_provider import UsageProvider
from models.inventory_optimizer import InventoryOptimizer
from models.prediction_service import PredictionService


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    Session = sessionmaker(bind=engine)
    db = Session()
    yield db
    db.close()


@pytest.fixture
def add_product(session):
    """add_product(name, stock_quantity=..., cost=..., ...) -> product id"""

    def _add(name="Product", **fields):
        fields.setdefault("stock_quantity", 0)
        fields.setdefault("cost", 1.0)
        product = Product(name=name, sku=f"SKU-{name}", **fields)
        session.add(product)
        session.commit()
        return product.id

    return _add


@pytest.fixture
def add_usage(session):
    """
    add_usage(product_id, [q1, q2, ...]) records one depletion per day,
    oldest first, ending today. Zero quantities leave the day empty.
    """

    def _add(product_id, quantities, days_ago_end=0):
        now = datetime.utcnow()
        n = len(quantities)
        for i, qty in enumerate(quantities):
            if qty == 0:
                continue
            created = now - timedelta(days=n - 1 - i + days_ago_end, minutes=5)
            session.add(InventoryTransaction(
                product_id=product_id,
                quantity_change=-int(qty),
                transaction_type="sale",
                created_at=created,
            ))
        session.commit()

    return _add


@pytest.fixture
def provider(engine):
    return UsageProvider(engine)


@pytest.fixture
def prediction_service(provider):
    return PredictionService(provider)


@pytest.fixture
def optimizer(provider):
    return InventoryOptimizer(provider)


@pytest.fixture
def client(provider, monkeypatch):
    import app as app_module

    monkeypatch.setattr(app_module, "prediction_service", PredictionService(provider))
    monkeypatch.setattr(app_module, "inventory_optimizer", InventoryOptimizer(provider))
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()
