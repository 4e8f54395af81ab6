"""Tests for the FastAPI integration."""
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pgconnect import Page, Repository
from pgconnect.api import (
    PageParams,
    get_session,
    health_router,
    lifespan,
    page_params,
    paginate,
    register_exception_handlers,
    repository_dependency,
)
from tests.conftest import Widget


class WidgetIn(BaseModel):
    name: str
    status: str = "active"


class WidgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str


get_widgets = repository_dependency(Widget)


def build_app(config) -> FastAPI:
    app = FastAPI(lifespan=lifespan(config, Widget))
    register_exception_handlers(app)
    app.include_router(health_router)

    @app.post("/widgets", response_model=WidgetOut)
    async def create_widget(payload: WidgetIn, repo: Repository = Depends(get_widgets)):
        return await repo.create(Widget(name=payload.name, status=payload.status))

    @app.get("/widgets", response_model=Page[WidgetOut])
    async def list_widgets(
        status: str = None,
        params: PageParams = Depends(page_params),
        repo: Repository = Depends(get_widgets),
    ):
        if status:
            return await paginate(repo, params, "status = ?", status)
        return await paginate(repo, params)

    @app.get("/widgets/{widget_id}", response_model=WidgetOut)
    async def read_widget(widget_id: int, repo: Repository = Depends(get_widgets)):
        return await repo.find_by_id(widget_id)

    @app.get("/stats")
    async def stats(session: AsyncSession = Depends(get_session)):
        total = await session.scalar(select(func.count()).select_from(Widget))
        return {"widgets": total}

    return app


@pytest.fixture
def client(config):
    with TestClient(build_app(config)) as test_client:
        yield test_client


def test_create_and_read(client):
    created = client.post("/widgets", json={"name": "sprocket"}).json()
    assert created["status"] == "active"

    response = client.get(f"/widgets/{created['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "sprocket"


def test_missing_widget_is_404(client):
    response = client.get("/widgets/999")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"]


def test_paginated_listing(client):
    for i in range(7):
        client.post("/widgets", json={"name": f"w{i}", "status": "active" if i < 5 else "inactive"})

    body = client.get("/widgets", params={"page": 2, "page_size": 3}).json()
    assert body["total"] == 7
    assert body["page"] == 2
    assert [w["name"] for w in body["data"]] == ["w3", "w4", "w5"]

    active = client.get("/widgets", params={"status": "active", "page_size": 10}).json()
    assert active["total"] == 5


def test_page_size_is_bounded(client):
    assert client.get("/widgets", params={"page_size": 1000}).status_code == 422
    assert client.get("/widgets", params={"page": 0}).status_code == 422


def test_health_reports_database(client, config):
    response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": config.database}


def test_health_after_close_is_503(client):
    client.portal.call(client.app.state.database.close)
    assert client.get("/health/db").status_code == 503


def test_session_dependency(client):
    client.post("/widgets", json={"name": "a"})
    client.post("/widgets", json={"name": "b"})
    assert client.get("/stats").json() == {"widgets": 2}
