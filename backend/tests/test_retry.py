# Overview: Pytest coverage for the transaction retry wrapper.

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from gebeyanet.errors import ConcurrencyError, PersistenceError
from gebeyanet.extensions import db
from gebeyanet.models import Category, StockMovement
from gebeyanet.services import inventory_service
from gebeyanet.services.concurrency import run_with_retry


def _locked():
    raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


def test_retries_then_succeeds(db_session):
    calls = []

    def op():
        calls.append(1)
        if len(calls) == 1:
            raise StaleDataError("version mismatch")
        return "ok"

    assert run_with_retry(op, backoff_base=0) == "ok"
    assert len(calls) == 2


def test_contention_past_attempts_is_concurrency_error(app, db_session):
    calls = []

    def op():
        calls.append(1)
        _locked()

    with pytest.raises(ConcurrencyError) as excinfo:
        run_with_retry(op, backoff_base=0)

    assert len(calls) == app.config["RETRY_ATTEMPTS"]
    assert excinfo.value.status_code == 503
    assert excinfo.value.to_dict()["details"] == {"retryable": True}


def test_storage_error_is_persistence_error_and_rolls_back(db_session):
    def op():
        db.session.add(Category(name="Spices"))
        db.session.flush()
        db.session.add(Category(name="Spices"))
        db.session.flush()
        db.session.commit()

    with pytest.raises(PersistenceError):
        run_with_retry(op, backoff_base=0)

    assert db.session.query(Category).filter_by(name="Spices").count() == 0


def test_domain_error_rolls_back_partial_work(owner, make_item):
    item = make_item(quantity=5)

    def op():
        inventory_service.apply_stock_change(item, -2, movement_type="adjustment")
        db.session.flush()
        raise ValueError("bail out")

    with pytest.raises(ValueError):
        run_with_retry(op, backoff_base=0)

    db.session.expire_all()
    assert inventory_service.get_item(owner.id, item.id).quantity == 5
    assert db.session.query(StockMovement).filter_by(movement_type="adjustment").count() == 0
