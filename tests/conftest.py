"""
Pytest configuration and shared fixtures.
"""
import threading
from concurrent.futures import Future
from decimal import Decimal
from typing import List

import pytest

from perfumery import create_app
from perfumery.extensions import db as _db
from perfumery.models import Product, User
from perfumery.storefront import CartLine, CartSyncError, GuestCartStore, MemoryStorage


# ============================================================================
# Fixtures: Flask app and database
# ============================================================================

@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def shopper(db):
    user = User(email='shopper@example.com', name='Test Shopper', role='customer')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def logged_in_client(client, shopper):
    resp = client.post('/auth/login', json={'email': 'shopper@example.com', 'password': 'secret123'})
    assert resp.status_code == 200
    return client


def make_product(db, name, brand='Maison Test', price='100.00', notes=None, **fields):
    product = Product(
        name=name,
        slug=name.lower().replace(' ', '-'),
        brand=brand,
        price=Decimal(price),
        stock=10,
        scent_notes=notes or {'top': [], 'middle': [], 'base': []},
        **fields
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture
def catalog(db):
    """Small catalogue; keys are short handles used by the tests."""
    return {
        'citrus': make_product(db, 'Citrus Splash', brand='Acqua', price='100.00',
                               notes={'top': ['Bergamot', 'Citrus Peel'], 'middle': ['Neroli'], 'base': ['Musk']}),
        'rose': make_product(db, 'Rose Night', brand='Maison Rose', price='50.00',
                             notes={'top': ['Pink Pepper'], 'middle': ['Rose', 'Jasmine'], 'base': ['Vanilla']},
                             is_trending=True, gender='women'),
        'oud': make_product(db, 'Oud Royale', brand='Maison Rose', price='250.00',
                            notes={'top': ['Saffron'], 'middle': ['Oud'], 'base': ['Amber', 'Leather']},
                            concentration='Parfum'),
        'retired': make_product(db, 'Retired Citrus', brand='Acqua', price='30.00',
                                notes={'top': ['Lemon'], 'middle': [], 'base': []},
                                is_active=False),
    }


# ============================================================================
# Fixtures: storefront client
# ============================================================================

def line(product_id, quantity=1, price='10.00', name=None):
    return CartLine(
        product_id=product_id,
        slug=f'product-{product_id}',
        name=name or f'Product {product_id}',
        brand='Brand',
        unit_price=Decimal(price),
        quantity=quantity,
    )


class FakeCartBackend:
    """In-memory stand-in for the server cart endpoints.

    ``merge_cart`` sums quantities per product id, like the real server.
    """

    def __init__(self, server_lines=None):
        self.server_lines: List[CartLine] = list(server_lines or [])
        self.calls = []
        self.fail_merge = False
        self.fail_fetch = False
        self.fail_sync = False
        self.merge_gate = None
        self.merge_started = threading.Event()
        self.synced = []
        self.preferences = []
        self._lock = threading.Lock()

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name, *args))

    def call_names(self):
        with self._lock:
            return [c[0] for c in self.calls]

    def fetch_cart(self):
        self._record('fetch')
        if self.fail_fetch:
            raise CartSyncError('fetch failed', status_code=500)
        return list(self.server_lines)

    def sync_cart(self, lines):
        self._record('sync', list(lines))
        if self.fail_sync:
            raise CartSyncError('sync failed', status_code=503)
        self.server_lines = list(lines)
        self.synced.append(list(lines))

    def merge_cart(self, guest_lines):
        self._record('merge', list(guest_lines))
        self.merge_started.set()
        if self.merge_gate is not None:
            self.merge_gate.wait(timeout=5)
        if self.fail_merge:
            raise CartSyncError('merge timed out')
        merged = {l.product_id: l for l in self.server_lines}
        for guest in guest_lines:
            existing = merged.get(guest.product_id)
            if existing:
                merged[guest.product_id] = existing.with_quantity(existing.quantity + guest.quantity)
            else:
                merged[guest.product_id] = guest
        self.server_lines = list(merged.values())
        return list(self.server_lines)

    def sync_preferences(self, payload):
        self._record('preferences', payload)
        self.preferences.append(payload)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def guest_store(storage):
    return GuestCartStore(storage)


@pytest.fixture
def backend():
    return FakeCartBackend()


class ImmediateExecutor:
    """Runs submitted work on the calling thread, so Flask test requests stay in the test's context."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True):
        pass


class FlaskTestSession:
    """Lets HttpCartBackend talk to the Flask test client instead of the network."""

    def __init__(self, client):
        self.client = client
        self.headers = {}

    def request(self, method, url, json=None, timeout=None):
        path = url.split('://', 1)[-1]
        path = path[path.index('/'):]
        resp = self.client.open(path, method=method, json=json)
        return _FlaskResponse(resp)


class _FlaskResponse:
    def __init__(self, resp):
        self._resp = resp
        self.status_code = resp.status_code
        self.ok = resp.status_code < 400

    def json(self):
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError('no JSON body')
        return data

