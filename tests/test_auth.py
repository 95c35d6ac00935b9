"""
Tests for authentication and sign-up policy.
"""
import pytest
from django.contrib.auth import get_user_model
from django.test import RequestFactory
from django.urls import reverse

from registries.adapters import AccountAdapter

User = get_user_model()

pytestmark = pytest.mark.auth


class TestAuthentication:
    """Test user authentication against the JSON API."""

    def test_api_requires_authentication(self, client, db):
        response = client.get(reverse('registries:registry_list'))
        assert response.status_code == 401
        assert response.json() == {
            'ok': False,
            'error': {'code': 'ERR_NOT_AUTHENTICATED', 'message': 'Authentication required'},
        }

    def test_authenticated_access(self, authenticated_client):
        response = authenticated_client.get(reverse('registries:registry_list'))
        assert response.status_code == 200
        assert response.json()['ok'] is True

    def test_login_logout(self, client, owner):
        assert client.login(username='owner', password='testpass123')
        assert client.get(reverse('registries:registry_list')).status_code == 200

        client.logout()
        assert client.get(reverse('registries:registry_list')).status_code == 401

    def test_root_redirects_to_registry_list(self, authenticated_client):
        response = authenticated_client.get('/')
        assert response.status_code == 302
        assert response.url == reverse('registries:registry_list')


class TestSignupPolicy:

    def test_signup_open_by_default(self, settings):
        settings.ALLOW_REGISTRATION = True
        request = RequestFactory().get('/accounts/signup/')
        assert AccountAdapter(request).is_open_for_signup(request) is True

    def test_signup_can_be_closed(self, settings):
        settings.ALLOW_REGISTRATION = False
        request = RequestFactory().get('/accounts/signup/')
        assert AccountAdapter(request).is_open_for_signup(request) is False


class TestAdminAccess:

    def test_admin_can_access_admin_site(self, admin_client):
        response = admin_client.get('/admin/registries/item/')
        assert response.status_code == 200

    def test_regular_user_cannot_access_admin(self, authenticated_client):
        response = authenticated_client.get('/admin/')
        assert response.status_code == 302
