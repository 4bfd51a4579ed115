import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.schemas.allocation import HierarchyColumn, SkuRecord
from app.services.allocation_engine import AllocationContext
from main import app


@pytest.fixture
def columns():
    return [
        HierarchyColumn(level=1, column_name="category"),
        HierarchyColumn(level=2, column_name="material"),
    ]


@pytest.fixture
def skus():
    return [
        SkuRecord(sku_code="S1", unit_price=100, hierarchy_values={"category": "A", "material": "X"}),
        SkuRecord(sku_code="S2", unit_price=200, hierarchy_values={"category": "A", "material": "Y"}),
    ]


@pytest.fixture
def ctx(columns, skus):
    return AllocationContext(total_budget=10000, column_defs=columns, skus=skus)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    """A session with the two-SKU sample hierarchy imported."""
    response = client.post("/api/sessions/", json={"name": "Spring buy", "total_budget": 10000})
    assert response.status_code == 201
    sid = response.json()["id"]

    response = client.post(f"/api/sessions/{sid}/import", json={
        "hierarchy_columns": ["category", "material"],
        "sku_data": [
            {"sku_code": "S1", "unit_price": 100, "hierarchy_values": {"category": "A", "material": "X"}},
            {"sku_code": "S2", "unit_price": 200, "hierarchy_values": {"category": "A", "material": "Y"}},
        ],
    })
    assert response.status_code == 200
    return sid
