import os
import sqlite3
import tempfile
from contextlib import contextmanager

# point the app at a throwaway database before anything imports ecom.config
_TMP = tempfile.mkdtemp(prefix="ecom-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["LOCK_DIR"] = os.path.join(_TMP, "locks")
os.environ["JWT_SECRET"] = "testsecret"

from decimal import Decimal

import pytest

from ecom.db import Base, SessionLocal, engine, load_models
from ecom.models.product import Product
from ecom.models.user import User
from ecom.services.auth_service import create_access_token

load_models()


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.rollback()
        s.close()


def add_product(name="Tea 100g", price="10.00", quantity=100, **kw):
    s = SessionLocal()
    try:
        p = Product(
            name=name,
            description=kw.get("description", "test product"),
            image=kw.get("image", "tea.png"),
            price=Decimal(price),
            quantity=quantity,
        )
        s.add(p)
        s.flush()
        pid = p.id
        s.commit()
        return pid
    finally:
        s.close()


def add_user(email="buyer@shop.com"):
    s = SessionLocal()
    try:
        u = User(first_name="Ada", last_name="Buyer", email=email, password="x")
        s.add(u)
        s.flush()
        uid = u.id
        s.commit()
        return uid
    finally:
        s.close()


def stock_of(product_id):
    s = SessionLocal()
    try:
        return s.get(Product, product_id).quantity
    finally:
        s.close()


@pytest.fixture
def user_id():
    return add_user()


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@contextmanager
def foreign_write_lock():
    """Another connection holding the SQLite write lock, as a second process would."""
    conn = sqlite3.connect(engine.url.database, isolation_level=None)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("ROLLBACK")
    finally:
        conn.close()
