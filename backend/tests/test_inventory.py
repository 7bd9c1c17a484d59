import threading

import pytest

from conftest import add_product, stock_of
from ecom.services.errors import (
    CheckoutTimeout,
    ConcurrencyViolation,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
)
from ecom.services.inventory_service import InventoryService


def test_reserve_decrements_and_commits(db):
    pid = add_product(quantity=5)
    svc = InventoryService(db)
    assert svc.reserve_stock(pid, 2) == 3
    # no outer transaction, so the reservation committed on its own
    assert stock_of(pid) == 3


def test_reserve_whole_stock(db):
    pid = add_product(quantity=4)
    assert InventoryService(db).reserve_stock(pid, 4) == 0
    assert stock_of(pid) == 0


def test_reserve_missing_product(db):
    with pytest.raises(ProductNotFound):
        InventoryService(db).reserve_stock(12345, 1)


def test_reserve_more_than_available_leaves_stock(db):
    pid = add_product(quantity=1)
    with pytest.raises(InsufficientStock) as exc:
        InventoryService(db).reserve_stock(pid, 2)
    assert exc.value.available == 1
    assert stock_of(pid) == 1


@pytest.mark.parametrize("qty", [0, -3])
def test_reserve_rejects_non_positive_quantity(db, qty):
    pid = add_product(quantity=5)
    with pytest.raises(InvalidQuantity):
        InventoryService(db).reserve_stock(pid, qty)
    assert stock_of(pid) == 5


def test_post_update_mismatch_rolls_back(db, monkeypatch):
    pid = add_product(quantity=5)
    svc = InventoryService(db)
    # a concurrent writer slipped in between the update and the re-read
    monkeypatch.setattr(svc, "_read_quantity", lambda product_id: 1)
    with pytest.raises(ConcurrencyViolation) as exc:
        svc.reserve_stock(pid, 2)
    assert exc.value.expected == 3
    assert exc.value.actual == 1
    db.rollback()
    assert stock_of(pid) == 5


def test_reserve_inside_outer_transaction_uses_savepoint(db):
    pid = add_product(quantity=5)
    other = add_product(name="Other", quantity=1)
    svc = InventoryService(db)
    with db.begin():
        assert svc.reserve_stock(pid, 2) == 3
        with pytest.raises(InsufficientStock):
            svc.reserve_stock(other, 5)
        # the failed savepoint did not undo the first reservation
        assert svc.available_quantity(pid) == 3
    assert stock_of(pid) == 3
    assert stock_of(other) == 1


def test_outer_rollback_discards_reservation(db):
    pid = add_product(quantity=5)
    svc = InventoryService(db)
    db.begin()
    svc.reserve_stock(pid, 2)
    db.rollback()
    assert stock_of(pid) == 5


def test_available_quantity(db):
    pid = add_product(quantity=7)
    svc = InventoryService(db)
    assert svc.available_quantity(pid) == 7
    with pytest.raises(ProductNotFound):
        svc.available_quantity(999)


def test_lock_rows_returns_sorted_products(db):
    a = add_product(name="A", quantity=1)
    b = add_product(name="B", quantity=2)
    rows = InventoryService(db).lock_rows([b, a, b, 404])
    assert [p.id for p in rows] == sorted([a, b])


def test_hold_times_out_when_product_is_locked(db, tmp_path):
    svc = InventoryService(db, lock_dir=str(tmp_path))
    entered = threading.Event()
    release = threading.Event()

    def holder():
        with InventoryService(None, lock_dir=str(tmp_path)).hold([1], timeout=5):
            entered.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    try:
        assert entered.wait(5)
        with pytest.raises(CheckoutTimeout):
            with svc.hold([2, 1], timeout=0.2):
                pass
    finally:
        release.set()
        t.join()

    # free again once the other holder is gone
    with svc.hold([1, 2], timeout=1):
        pass
