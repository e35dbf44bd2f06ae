"""
Tests for the session endpoints the storefront observes.
"""
from perfumery.models import User


class TestLogin:

    def test_login_and_session_status(self, client, shopper):
        assert client.get('/auth/session').get_json()['status'] == 'unauthenticated'

        resp = client.post('/auth/login', json={'email': 'Shopper@Example.com', 'password': 'secret123'})

        assert resp.status_code == 200
        assert resp.get_json()['user']['email'] == 'shopper@example.com'
        session = client.get('/auth/session').get_json()
        assert session['status'] == 'authenticated'
        assert session['user']['id'] == shopper.id

    def test_wrong_password(self, client, shopper):
        resp = client.post('/auth/login', json={'email': 'shopper@example.com', 'password': 'nope'})
        assert resp.status_code == 401

    def test_invalid_email_is_rejected_by_form(self, client):
        resp = client.post('/auth/login', json={'email': 'not-an-email', 'password': 'x'})

        assert resp.status_code == 400
        assert 'email' in resp.get_json()['fields']

    def test_deactivated_account(self, client, db, shopper):
        shopper.is_active = False
        db.session.commit()

        resp = client.post('/auth/login', json={'email': 'shopper@example.com', 'password': 'secret123'})
        assert resp.status_code == 403

    def test_logout(self, logged_in_client):
        resp = logged_in_client.post('/auth/logout')

        assert resp.get_json() == {'status': 'unauthenticated'}
        assert logged_in_client.get('/auth/session').get_json()['status'] == 'unauthenticated'
        assert logged_in_client.get('/api/cart/sync').status_code == 401


class TestRegister:

    def test_register_customer(self, client):
        resp = client.post('/auth/register', json={
            'name': 'New Shopper',
            'email': 'New@Example.com',
            'password': 'longenough',
            'confirm_password': 'longenough',
        })

        assert resp.status_code == 201
        user = User.query.filter_by(email='new@example.com').one()
        assert user.role == 'customer'
        assert user.check_password('longenough')

    def test_duplicate_email(self, client, shopper):
        resp = client.post('/auth/register', json={
            'name': 'Again',
            'email': 'shopper@example.com',
            'password': 'longenough',
            'confirm_password': 'longenough',
        })

        assert resp.status_code == 400
        assert 'email' in resp.get_json()['fields']

    def test_password_mismatch(self, client):
        resp = client.post('/auth/register', json={
            'name': 'Mismatch',
            'email': 'mismatch@example.com',
            'password': 'longenough',
            'confirm_password': 'different',
        })

        assert resp.status_code == 400
        assert 'confirm_password' in resp.get_json()['fields']
