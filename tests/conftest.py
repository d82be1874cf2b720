"""Shared fixtures for the panel test suite.

Every test gets a fresh app bound to an in-memory SQLite database.
SQLite ignores ``FOR UPDATE`` / ``SKIP LOCKED``, so lock behaviour under
real contention is covered separately in ``test_concurrency.py`` against
PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from panel import create_app
from panel.config import Config
from panel.extensions import db
from panel.models import Order, Printer, PrinterAssignment

API_KEY = "test-panel-key"
BASE_TIME = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)


class PanelTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    PANEL_API_KEY = API_KEY
    APP_TZ = "UTC"
    DEFAULT_ESTIMATE_HOURS = 4.0
    DB_STATEMENT_TIMEOUT_MS = 0
    LOG_LEVEL = "WARNING"


# ---------------------------------------------------------------------------
# App / client
# ---------------------------------------------------------------------------

@pytest.fixture()
def app():
    app = create_app(PanelTestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers():
    return {"X-PANEL-KEY": API_KEY, "X-PANEL-USER": "operador"}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_printer(app):
    """Create printers whose created_at grows with creation order (first = oldest)."""
    counter = {"n": 0}

    def _make(name=None, material=None, status="available", model=None, created_at=None):
        counter["n"] += 1
        printer = Printer(
            id=uuid.uuid4(),
            name=name or f"Printer {counter['n']}",
            model=model,
            material=material,
            status=status,
            created_at=created_at or BASE_TIME + timedelta(minutes=counter["n"]),
        )
        db.session.add(printer)
        db.session.commit()
        return printer

    return _make


@pytest.fixture()
def make_order(app):
    def _make(status="new"):
        order = Order(id=uuid.uuid4(), status=status)
        db.session.add(order)
        db.session.commit()
        return order

    return _make


@pytest.fixture()
def add_active_job(app, make_order):
    """Put an active ledger row on a printer without going through the engine."""
    counter = {"n": 0}

    def _add(printer, order=None, assigned_at=None):
        counter["n"] += 1
        order = order or make_order(status="printing")
        row = PrinterAssignment(
            id=uuid.uuid4(),
            order_id=order.id,
            printer_id=printer.id,
            assigned_at=assigned_at or BASE_TIME + timedelta(seconds=counter["n"]),
        )
        db.session.add(row)
        db.session.commit()
        return row

    return _add


class LedgerProbe:
    """Read-only counters over the assignment ledger."""

    def _active(self):
        return db.session.query(PrinterAssignment).filter(PrinterAssignment.completed_at.is_(None))

    def for_order(self, order_id) -> int:
        return self._active().filter(PrinterAssignment.order_id == order_id).count()

    def for_printer(self, printer_id) -> int:
        return self._active().filter(PrinterAssignment.printer_id == printer_id).count()

    def total(self) -> int:
        return db.session.query(PrinterAssignment).count()


@pytest.fixture()
def ledger(app):
    return LedgerProbe()
