"""
Pytest fixtures for brokerage backend tests.

Provides an in-memory database, a fresh schema per test, job/vendor
factories, a recording invoice dispatcher and the test client.
"""

import pytest

from brokerage import create_app
from brokerage.extensions import db
from brokerage.services import job_service, vendor_service
from brokerage.services.invoice_dispatch import DispatchResult, InvoiceDispatcher, set_dispatcher


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DOWNSTREAM_INVOICE_RECIPIENT': 'ap@secondary-shop.test',
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


class RecordingDispatcher(InvoiceDispatcher):
    """Counts sends; can be told to fail or raise."""

    def __init__(self):
        self.sent_for = []
        self.fail_with = None
        self.raise_with = None

    def send_downstream_invoice(self, job):
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return DispatchResult(sent=False, error=self.fail_with)
        self.sent_for.append(job.id)
        return DispatchResult(sent=True, sent_to="ap@secondary-shop.test")


@pytest.fixture(scope='function')
def dispatcher(app):
    recorder = RecordingDispatcher()
    previous = app.extensions.get("invoice_dispatcher")
    set_dispatcher(app, recorder)
    yield recorder
    set_dispatcher(app, previous)


@pytest.fixture(scope='function')
def partner_vendor(db_session):
    return vendor_service.create_vendor(name="Preferred Partner", vendor_code="PARTNER", is_partner=True)


@pytest.fixture(scope='function')
def outside_vendor(db_session):
    return vendor_service.create_vendor(name="Outside Print Co", vendor_code="OPC")


@pytest.fixture(scope='function')
def make_job(db_session):
    """Factory: make_job(vendor=None, **fields) -> Job."""
    def _make(vendor=None, **fields):
        fields.setdefault("title", "Test job")
        return job_service.create_job(vendor_id=vendor.id if vendor else None, **fields)
    return _make


@pytest.fixture(scope='function')
def partner_job(make_job, partner_vendor):
    """6 x 9 self-mailer, 5000 pieces, sold for $900."""
    return make_job(partner_vendor, quantity=5000, sell_price="900.00", size_name="6x9")


@pytest.fixture(scope='function')
def third_party_job(make_job, outside_vendor):
    return make_job(outside_vendor, quantity=1, sell_price="1000.00")
