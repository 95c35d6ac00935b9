"""
Pytest configuration and fixtures for GiftShelf tests.

Cast used throughout:
- owner: created the registry (and owns the first sub-list)
- alice, bob, carol: ACCEPTED collaborators, each with a sub-list
- outsider: has an account but no membership
"""
import pytest
from django.contrib.auth import get_user_model

from registries.models import CollaboratorStatus, Item, Registry, SubList
from registries.services.collaborators import CollaboratorAggregate
from registries.services.registries import create_registry

User = get_user_model()


@pytest.fixture
def make_user(db):
    def _make(username, email=None, **extra):
        return User.objects.create_user(
            username=username,
            email=email or f"{username}@example.com",
            password="testpass123",
            **extra,
        )
    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider")


@pytest.fixture
def registry(owner):
    """A registry with only its owner as member."""
    data = create_registry(owner, {"title": "Winter Holidays"})
    return Registry.objects.get(pk=data["id"])


@pytest.fixture
def add_member():
    """Add a collaborator (ACCEPTED when a user is given, else PENDING)."""
    def _add(registry, user=None, email=None, name=""):
        status = CollaboratorStatus.ACCEPTED if user is not None else CollaboratorStatus.PENDING
        return CollaboratorAggregate.create(
            registry,
            email or user.email,
            name or (user.username if user else ""),
            user=user,
            status=status,
        )
    return _add


@pytest.fixture
def members(registry, add_member, alice, bob, carol):
    """alice, bob and carol as ACCEPTED collaborators; maps username to aggregate."""
    return {user.username: add_member(registry, user) for user in (alice, bob, carol)}


@pytest.fixture
def owner_sublist(registry, owner):
    return SubList.objects.get(registry=registry, collaborator__user=owner)


@pytest.fixture
def make_item():
    def _make(sublist, label="Wool scarf", **fields):
        return Item.objects.create(sublist=sublist, label=label, **fields)
    return _make


@pytest.fixture
def item(owner_sublist, make_item, members):
    """An UNCLAIMED item on the registry owner's sub-list, with the cast in place."""
    return make_item(owner_sublist, created_by=owner_sublist.collaborator.user)


@pytest.fixture
def client_for(client):
    """Return the Django test client logged in as the given user."""
    def _login(user):
        client.force_login(user)
        return client
    return _login


@pytest.fixture
def authenticated_client(client, owner):
    client.force_login(owner)
    return client
