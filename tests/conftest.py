from dataclasses import replace

import pytest
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from pgconnect import Base, Repository, TimestampMixin, connect, default_config


class Widget(TimestampMixin, Base):
    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)


@pytest.fixture
def config(tmp_path):
    return replace(
        default_config(),
        driver="sqlite+aiosqlite",
        database=str(tmp_path / "pgconnect_test.db"),
    )


@pytest.fixture
async def db(config):
    database = await connect(config)
    await database.auto_migrate(Widget)
    yield database
    if not database.closed:
        await database.close()


@pytest.fixture
def widgets(db):
    return Repository(db, Widget)
