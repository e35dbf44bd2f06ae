"""
Tests for the account cart endpoints.
"""
from perfumery.models import Cart


def post_items(client, items):
    return client.post('/api/cart/sync', json={'items': items})


class TestAuthRequired:

    def test_fetch_requires_login(self, client):
        resp = client.get('/api/cart/sync')
        assert resp.status_code == 401
        assert resp.get_json() == {'error': 'Unauthorized'}

    def test_merge_requires_login(self, client):
        resp = client.post('/api/cart/merge', json={'guestItems': []})
        assert resp.status_code == 401


class TestSync:

    def test_empty_cart(self, logged_in_client):
        resp = logged_in_client.get('/api/cart/sync')
        assert resp.status_code == 200
        assert resp.get_json() == {'items': []}

    def test_replace_cart(self, logged_in_client, catalog):
        citrus, rose = catalog['citrus'], catalog['rose']
        post_items(logged_in_client, [{'productId': citrus.id, 'quantity': 5}])

        resp = post_items(logged_in_client, [
            {'productId': rose.id, 'quantity': 2, 'price': 1.00},
        ])

        assert resp.status_code == 200
        items = logged_in_client.get('/api/cart/sync').get_json()['items']
        assert [(i['productId'], i['quantity']) for i in items] == [(rose.id, 2)]
        assert items[0]['price'] == 50.0
        assert items[0]['name'] == 'Rose Night'
        assert items[0]['scentNotes']['middle'] == ['Rose', 'Jasmine']

    def test_unknown_and_inactive_products_are_skipped(self, logged_in_client, catalog):
        resp = post_items(logged_in_client, [
            {'productId': catalog['citrus'].id, 'quantity': 1},
            {'productId': catalog['retired'].id, 'quantity': 1},
            {'productId': 9999, 'quantity': 1},
            {'productId': 'x'},
            {'productId': catalog['rose'].id, 'quantity': 0},
        ])

        assert [i['productId'] for i in resp.get_json()['items']] == [catalog['citrus'].id]

    def test_items_must_be_a_list(self, logged_in_client):
        assert post_items(logged_in_client, 'nope').status_code == 400
        assert logged_in_client.post('/api/cart/sync', data='not json').status_code == 400

    def test_out_of_range_quantity_is_skipped(self, logged_in_client, catalog):
        body = '{"items": [{"productId": %d, "quantity": 1e400}, {"productId": %d}]}' % (
            catalog['citrus'].id, catalog['rose'].id)
        resp = logged_in_client.post('/api/cart/sync', data=body, content_type='application/json')

        assert resp.status_code == 200
        assert [i['productId'] for i in resp.get_json()['items']] == [catalog['rose'].id]

    def test_one_cart_per_user(self, logged_in_client, catalog, shopper):
        post_items(logged_in_client, [{'productId': catalog['citrus'].id}])
        post_items(logged_in_client, [{'productId': catalog['rose'].id}])

        assert Cart.query.filter_by(user_id=shopper.id).count() == 1


class TestMerge:

    def test_quantities_are_summed(self, logged_in_client, catalog):
        citrus, rose = catalog['citrus'], catalog['rose']
        post_items(logged_in_client, [{'productId': citrus.id, 'quantity': 1}])

        resp = logged_in_client.post('/api/cart/merge', json={'guestItems': [
            {'productId': citrus.id, 'quantity': 2},
            {'productId': rose.id, 'quantity': 1},
            {'productId': catalog['retired'].id, 'quantity': 4},
        ]})

        assert resp.status_code == 200
        merged = {i['productId']: i['quantity'] for i in resp.get_json()['mergedItems']}
        assert merged == {citrus.id: 3, rose.id: 1}

    def test_merge_into_new_cart(self, logged_in_client, catalog):
        resp = logged_in_client.post('/api/cart/merge', json={'guestItems': [
            {'productId': catalog['oud'].id, 'quantity': 1},
        ]})

        assert [i['productId'] for i in resp.get_json()['mergedItems']] == [catalog['oud'].id]

    def test_duplicate_guest_lines_are_summed(self, logged_in_client, catalog):
        oud = catalog['oud']
        resp = logged_in_client.post('/api/cart/merge', json={'guestItems': [
            {'productId': oud.id, 'quantity': 1},
            {'productId': oud.id, 'quantity': 2},
        ]})

        assert resp.get_json()['mergedItems'][0]['quantity'] == 3

    def test_guest_items_must_be_a_list(self, logged_in_client):
        resp = logged_in_client.post('/api/cart/merge', json={'guestItems': {}})
        assert resp.status_code == 400


class TestUpdateAndDelete:

    def test_update_quantity(self, logged_in_client, catalog):
        citrus = catalog['citrus']
        post_items(logged_in_client, [{'productId': citrus.id, 'quantity': 1}])

        resp = logged_in_client.put('/api/cart/sync', json={'productId': citrus.id, 'quantity': 4})

        assert resp.status_code == 200
        items = logged_in_client.get('/api/cart/sync').get_json()['items']
        assert items[0]['quantity'] == 4

    def test_zero_quantity_removes_line(self, logged_in_client, catalog):
        citrus = catalog['citrus']
        post_items(logged_in_client, [{'productId': citrus.id, 'quantity': 1}])

        logged_in_client.put('/api/cart/sync', json={'productId': citrus.id, 'quantity': 0})

        assert logged_in_client.get('/api/cart/sync').get_json()['items'] == []

    def test_update_needs_product_and_quantity(self, logged_in_client):
        resp = logged_in_client.put('/api/cart/sync', json={'productId': 1})
        assert resp.status_code == 400

    def test_update_rejects_out_of_range_quantity(self, logged_in_client):
        resp = logged_in_client.put('/api/cart/sync', data='{"productId": 1, "quantity": 1e400}',
                                    content_type='application/json')
        assert resp.status_code == 400

    def test_update_without_cart(self, logged_in_client):
        resp = logged_in_client.put('/api/cart/sync', json={'productId': 1, 'quantity': 2})
        assert resp.status_code == 404

    def test_delete_line(self, logged_in_client, catalog):
        citrus, rose = catalog['citrus'], catalog['rose']
        post_items(logged_in_client, [{'productId': citrus.id}, {'productId': rose.id}])

        resp = logged_in_client.delete(f'/api/cart/sync?productId={citrus.id}')

        assert resp.status_code == 200
        items = logged_in_client.get('/api/cart/sync').get_json()['items']
        assert [i['productId'] for i in items] == [rose.id]

    def test_delete_needs_product_id(self, logged_in_client):
        assert logged_in_client.delete('/api/cart/sync').status_code == 400
