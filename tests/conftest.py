"""Shared fixtures: in-memory SQLite session, temp dir for deliverables, factories."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mediamarket.core.config import settings
from mediamarket.db.base import Base
from mediamarket.models.download import DownloadLink  # noqa: F401
from mediamarket.models.enums import ProductFormat, ProductType
from mediamarket.models.product import Product
from mediamarket.models.purchase import Purchase  # noqa: F401
from mediamarket.models.token_ledger import TokenLedger  # noqa: F401
from mediamarket.models.user import User


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def tmp_dir(tmp_path, monkeypatch):
    out = tmp_path / "deliverables"
    out.mkdir()
    monkeypatch.setattr(settings, "tmp_dir", str(out))
    return out


@pytest.fixture
def masters(tmp_path):
    directory = tmp_path / "masters"
    directory.mkdir()
    return directory


def make_user(db, email: str, tokens="0", **kwargs) -> User:
    user = User(email=email, tokens=Decimal(str(tokens)), **kwargs)
    db.add(user)
    db.commit()
    return user


def make_image(path, size=(400, 300), color=(30, 60, 200), fmt="PNG") -> str:
    Image.new("RGB", size, color).save(str(path), fmt)
    return str(path)


def make_product(
    db,
    path: str,
    cost="5",
    format: ProductFormat = ProductFormat.PNG,
    title: str = "Old map",
    type: ProductType = ProductType.MAP,
) -> Product:
    product = Product(
        title=title,
        type=type,
        year=1890,
        format=format,
        cost=Decimal(str(cost)),
        path=path,
    )
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def factory(db, masters):
    """Small helper bundle so tests read as scenarios."""

    class Factory:
        counter = 0

        def user(self, email=None, tokens="0", **kwargs):
            Factory.counter += 1
            return make_user(db, email or f"user{Factory.counter}@example.com", tokens, **kwargs)

        def image_product(self, cost="5", fmt=ProductFormat.PNG, size=(400, 300), title="Old map"):
            Factory.counter += 1
            pil = {ProductFormat.PNG: "PNG", ProductFormat.JPG: "JPEG", ProductFormat.TIFF: "TIFF"}[fmt]
            path = make_image(masters / f"master{Factory.counter}.{fmt.value}", size=size, fmt=pil)
            return make_product(db, path, cost=cost, format=fmt, title=title)

        def video_product(self, cost="8", title="Newsreel"):
            Factory.counter += 1
            path = masters / f"clip{Factory.counter}.mp4"
            path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
            return make_product(
                db,
                str(path),
                cost=cost,
                format=ProductFormat.MP4,
                title=title,
                type=ProductType.HISTORICAL_VIDEO,
            )

    return Factory()
