"""
Tests for the recommendation endpoints.
"""
from perfumery.services.recommendations import current_season


def names(resp, key='products'):
    return [p['name'] for p in resp.get_json()[key]]


def test_trending(client, catalog):
    resp = client.get('/api/recommendations/trending')

    assert resp.status_code == 200
    assert names(resp)[0] == 'Rose Night'
    assert 'Retired Citrus' not in names(resp)
    assert resp.get_json()['products'][0]['price'] == '50.00'


def test_limit_is_clamped(client, catalog):
    assert len(names(client.get('/api/recommendations/trending?limit=1'))) == 1
    assert len(names(client.get('/api/recommendations/trending?limit=0'))) == 1


def test_season_defaults_to_current(client, catalog):
    resp = client.get('/api/recommendations/season')
    assert resp.get_json()['season'] == current_season()


def test_named_season(client, catalog):
    resp = client.get('/api/recommendations/season/summer')

    assert resp.get_json()['season'] == 'summer'
    assert names(resp) == ['Citrus Splash']


def test_unknown_mood_uses_fresh(client, catalog):
    unknown = client.get('/api/recommendations/mood/grumpy')
    fresh = client.get('/api/recommendations/mood/fresh')

    assert names(unknown) == names(fresh) == ['Citrus Splash']


def test_occasion(client, catalog):
    assert names(client.get('/api/recommendations/occasion/special')) == ['Oud Royale']


def test_product_rails(client, catalog):
    resp = client.get(f"/api/recommendations/product/{catalog['oud'].id}")

    data = resp.get_json()
    assert resp.status_code == 200
    assert [p['name'] for p in data['sameBrand']] == ['Rose Night']
    assert set(data) == {'similar', 'sameBrand', 'cheaper', 'pairsWith'}


def test_unknown_product(client, catalog):
    resp = client.get('/api/recommendations/product/9999')

    assert resp.status_code == 404
    assert resp.get_json() == {'error': 'Not found'}


def test_cart_complements(client, catalog):
    resp = client.get(f"/api/recommendations/cart?productIds={catalog['citrus'].id}")
    assert names(resp) == ['Rose Night', 'Oud Royale']


def test_cart_complements_without_ids(client, catalog):
    assert names(client.get('/api/recommendations/cart?productIds=abc,')) == []


def test_personalized(client, catalog):
    resp = client.post('/api/recommendations/personalized', json={
        'brands': ['Maison Rose'],
        'scentFamilies': [],
        'viewedProductIds': [catalog['rose'].id],
    })

    assert names(resp) == ['Oud Royale']
