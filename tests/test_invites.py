"""
Tests for invite issuing, consumption and acceptance by email.
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from registries.errors import (
    ERR_DUPLICATE_INVITE,
    EmailMismatch,
    Forbidden,
    InviteExpired,
    InviteInvalid,
    InviteUsed,
    ValidationFailed,
)
from registries.models import Collaborator, CollaboratorStatus, InviteToken
from registries.services.collaborators import remove_collaborator
from registries.services.invites import (
    accept_pending_invites_by_email,
    consume_invite_token,
    create_invites,
    get_invite_info,
    issue_invite_token,
)
from registries.services.registries import create_registry


@pytest.fixture
def dana(make_user):
    return make_user("dana")


def only_token_for(email):
    return InviteToken.objects.get(email=email, used=False)


class TestCreateInvites:

    def test_invites_create_pending_collaborators_with_tokens(self, settings, registry, owner):
        settings.APP_BASE_URL = "https://gifts.example.com/"
        results = create_invites(registry.pk, [{"email": "Dana@Example.com", "name": "Dana"}], owner)

        assert len(results) == 1
        result = results[0]
        assert result.ok and result.is_new
        collaborator = Collaborator.objects.get(pk=result.collaborator_id)
        assert collaborator.status == CollaboratorStatus.PENDING
        assert collaborator.email == "dana@example.com"
        assert collaborator.sublist.name == "Dana's List"

        token = only_token_for("dana@example.com")
        assert result.accept_url == f"https://gifts.example.com/invite/{token.token}"
        expected_expiry = timezone.now() + timedelta(days=30)
        assert abs((token.expires_at - expected_expiry).total_seconds()) < 60

    def test_reinvite_keeps_only_one_live_token(self, registry, owner):
        create_invites(registry.pk, [{"email": "dana@example.com"}], owner)
        first = only_token_for("dana@example.com")

        results = create_invites(registry.pk, [{"email": "dana@example.com"}], owner)

        assert results[0].ok and not results[0].is_new
        first.refresh_from_db()
        assert first.used is True
        assert InviteToken.objects.filter(email="dana@example.com", used=False).count() == 1
        assert Collaborator.objects.filter(registry=registry, email="dana@example.com").count() == 1

    def test_one_bad_entry_does_not_abort_the_rest(self, registry, owner, members, alice):
        results = create_invites(
            registry.pk,
            [{"email": alice.email}, {"email": "dana@example.com"}],
            owner,
        )
        by_email = {r.email: r for r in results}
        assert by_email[alice.email].ok is False
        assert by_email[alice.email].error["code"] == ERR_DUPLICATE_INVITE
        assert by_email["dana@example.com"].ok is True
        assert by_email[alice.email].to_dict()["error"]["code"] == ERR_DUPLICATE_INVITE

    def test_collaborator_needs_invite_rights(self, registry, members, alice):
        with pytest.raises(Forbidden):
            create_invites(registry.pk, [{"email": "dana@example.com"}], alice)

        registry.collaborators_can_invite = True
        registry.save()
        results = create_invites(registry.pk, [{"email": "dana@example.com"}], alice)
        assert results[0].ok

    def test_invite_count_is_bounded(self, registry, owner):
        with pytest.raises(ValidationFailed):
            create_invites(registry.pk, [], owner)
        too_many = [{"email": f"guest{i}@example.com"} for i in range(51)]
        with pytest.raises(ValidationFailed):
            create_invites(registry.pk, too_many, owner)


class TestConsumeInviteToken:

    def test_valid_token_accepts_collaborator(self, registry, owner, dana):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)

        collaborator = consume_invite_token(token.token, dana.pk, "DANA@example.com")

        assert collaborator.status == CollaboratorStatus.ACCEPTED
        assert collaborator.user_id == dana.pk
        assert collaborator.accepted_at is not None
        token.refresh_from_db()
        assert token.used is True

    def test_token_is_single_use(self, registry, owner, dana):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)
        consume_invite_token(token.token, dana.pk, dana.email)
        with pytest.raises(InviteUsed):
            consume_invite_token(token.token, dana.pk, dana.email)

    def test_expired_token(self, registry, owner, dana):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)
        InviteToken.objects.filter(pk=token.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        with pytest.raises(InviteExpired):
            consume_invite_token(token.token, dana.pk, dana.email)

    def test_email_must_match(self, registry, owner, dana, outsider):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)
        with pytest.raises(EmailMismatch):
            consume_invite_token(token.token, outsider.pk, outsider.email)
        token.refresh_from_db()
        assert token.used is False

    def test_unknown_token(self, db, dana):
        with pytest.raises(InviteInvalid):
            consume_invite_token("no-such-token", dana.pk, dana.email)

    def test_token_of_removed_collaborator_is_spent(self, registry, owner, dana):
        results = create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)
        remove_collaborator(registry.pk, results[0].collaborator_id, owner.pk)
        with pytest.raises(InviteUsed):
            consume_invite_token(token.token, dana.pk, dana.email)

    def test_orphaned_unused_token_is_invalid(self, registry, owner, dana):
        orphan = InviteToken.objects.create(registry=registry, email=dana.email, created_by=owner)
        with pytest.raises(InviteInvalid):
            consume_invite_token(orphan.token, dana.pk, dana.email)


class TestInviteInfoAndPending:

    def test_info_does_not_consume(self, registry, owner, dana):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        token = only_token_for(dana.email)

        info = get_invite_info(token.token)

        assert info["email"] == dana.email
        assert info["used"] is False
        assert info["expired"] is False
        assert info["registry"]["title"] == registry.title
        assert info["registry"]["owner"]["id"] == owner.pk
        assert info["collaborator_status"] == CollaboratorStatus.PENDING
        token.refresh_from_db()
        assert token.used is False

    def test_info_for_unknown_token(self, db):
        assert get_invite_info("missing") is None

    def test_accept_pending_by_email(self, registry, owner, dana, make_user):
        create_invites(registry.pk, [{"email": dana.email}], owner)
        second_owner = make_user("second_owner")
        other = create_registry(second_owner, {"title": "Graduation"})
        create_invites(other["id"], [{"email": dana.email}], second_owner)

        accepted = accept_pending_invites_by_email(dana.pk, dana.email.upper())

        assert {a["registry_id"] for a in accepted} == {registry.pk, other["id"]}
        assert not Collaborator.objects.filter(email=dana.email, status=CollaboratorStatus.PENDING).exists()
        assert not InviteToken.objects.filter(email=dana.email, used=False).exists()

    def test_accept_pending_with_nothing_pending(self, db, dana):
        assert accept_pending_invites_by_email(dana.pk, dana.email) == []

    def test_issue_invite_token_invalidates_previous(self, registry, owner, add_member):
        pending = add_member(registry, email="twice@example.com")
        first = issue_invite_token(pending.collaborator, owner)
        second = issue_invite_token(pending.collaborator, owner)
        first.refresh_from_db()
        assert first.used is True
        assert second.used is False
        assert first.token != second.token
