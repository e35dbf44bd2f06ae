"""
End-to-end storefront flow: the client core talking to the real API.
"""
import pytest

from perfumery.storefront import CartState, HttpCartBackend, Storefront, ViewedProduct

from conftest import FlaskTestSession, ImmediateExecutor, line


@pytest.fixture
def storefront(client, storage):
    backend = HttpCartBackend('http://localhost', session=FlaskTestSession(client))
    storefront = Storefront(storage, backend, executor=ImmediateExecutor())
    yield storefront
    storefront.close()


def login(client):
    resp = client.post('/auth/login', json={'email': 'shopper@example.com', 'password': 'secret123'})
    assert resp.status_code == 200


def server_cart(client):
    return {i['productId']: i['quantity'] for i in client.get('/api/cart/sync').get_json()['items']}


def test_guest_cart_survives_sign_in(client, shopper, catalog, storefront):
    citrus, rose, oud = catalog['citrus'], catalog['rose'], catalog['oud']
    login(client)
    client.post('/api/cart/sync', json={'items': [{'productId': citrus.id, 'quantity': 1}]})
    client.post('/auth/logout')

    storefront.on_auth_status('unauthenticated')
    storefront.cart.add_item(line(citrus.id, quantity=2, price='100.00'))
    storefront.cart.add_item(line(rose.id, price='50.00'))
    storefront.preferences.track_product_view(ViewedProduct(
        product_id=rose.id, slug=rose.slug, name=rose.name, brand=rose.brand,
        scent_family=['Floral']))

    login(client)
    storefront.on_auth_status('authenticated')

    cart = storefront.cart
    assert cart.state is CartState.AUTHENTICATED_ACTIVE
    assert {l.product_id: l.quantity for l in cart.items} == {citrus.id: 3, rose.id: 1}
    assert cart.subtotal == 350
    assert storefront.guest_cart.load() == []

    prefs = client.get('/api/personalization/').get_json()['preferences']
    assert prefs['brands'] == ['Maison Rose']
    assert prefs['scentFamilies'] == ['Floral']

    cart.add_item(line(oud.id, price='250.00'))
    cart.update_quantity(citrus.id, 1)
    assert server_cart(client) == {citrus.id: 1, rose.id: 1, oud.id: 1}
    assert not cart.last_sync_failed


def test_sign_out_then_back_in(client, shopper, catalog, storefront):
    rose = catalog['rose']
    login(client)
    storefront.on_auth_status('authenticated')
    storefront.cart.add_item(line(rose.id, price='50.00'))

    client.post('/auth/logout')
    storefront.on_auth_status('unauthenticated')
    assert storefront.cart.items == []

    storefront.cart.add_item(line(rose.id, quantity=2, price='50.00'))
    login(client)
    storefront.on_auth_status('authenticated')

    assert server_cart(client) == {rose.id: 3}


def test_rejected_merge_is_retried(client, shopper, catalog, storefront):
    citrus = catalog['citrus']
    storefront.on_auth_status('unauthenticated')
    storefront.cart.add_item(line(citrus.id, price='100.00'))

    # the session cookie is missing, so the server answers 401
    storefront.on_auth_status('authenticated')
    assert storefront.cart.merge_pending
    assert storefront.cart.last_sync_failed
    assert [l.product_id for l in storefront.guest_cart.load()] == [citrus.id]

    login(client)
    assert storefront.cart.retry_merge() is True
    assert server_cart(client) == {citrus.id: 1}
