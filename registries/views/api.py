"""
JSON API views.
Thin wrappers: parse and validate the request, call one service, render.
"""

import logging

from django.http import HttpRequest, JsonResponse

from ..errors import NotFound
from ..forms import (
    InitialMemberForm,
    InviteEntryForm,
    InviteTokenForm,
    ItemEntryForm,
    ItemForm,
    ItemUpdateForm,
    ProfileForm,
    RegistryForm,
    RegistryUpdateForm,
    SubListForm,
)
from ..services import invites as invite_service
from ..services import items as item_service
from ..services import profiles as profile_service
from ..services import registries as registry_service
from ..services.claims import ClaimArbiter
from ..services.collaborators import remove_collaborator
from .helpers import (
    api_view,
    json_created,
    json_ok,
    parse_json_body,
    validate_entries,
    validate_payload,
)

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------------------------------
# Registries
# -------------------------------------------------------------------------------------------------

@api_view("GET", "POST")
def registries_collection(request: HttpRequest) -> JsonResponse:
    if request.method == "GET":
        return json_ok(registries=registry_service.list_registries_for_user(request.user.pk))

    payload = parse_json_body(request)
    data = validate_payload(RegistryForm, payload)
    members = validate_entries(InitialMemberForm, payload.get("initial_members"), "initial_members")
    raw_members = payload.get("initial_members") or []
    for index, member in enumerate(members):
        member["items"] = validate_entries(
            ItemEntryForm, raw_members[index].get("items"), f"initial_members.{index}.items"
        )
    data["initial_members"] = members

    registry = registry_service.create_registry(request.user, data)
    return json_created(registry=registry)


@api_view("GET", "PATCH")
def registry_detail(request: HttpRequest, registry_id: int) -> JsonResponse:
    if request.method == "GET":
        return json_ok(registry=registry_service.get_registry_for_viewer(registry_id, request.user.pk))

    data = validate_payload(RegistryUpdateForm, parse_json_body(request), partial=True)
    registry = registry_service.update_registry(registry_id, request.user.pk, data)
    return json_ok(registry=registry)


@api_view("POST")
def registry_invites(request: HttpRequest, registry_id: int) -> JsonResponse:
    payload = parse_json_body(request)
    entries = validate_entries(InviteEntryForm, payload.get("emails"), "emails")
    results = invite_service.create_invites(registry_id, entries, request.user)
    return json_ok(results=[result.to_dict() for result in results])


@api_view("DELETE")
def registry_collaborator(request: HttpRequest, registry_id: int, collaborator_id: int) -> JsonResponse:
    result = remove_collaborator(registry_id, collaborator_id, request.user.pk)
    return json_ok(removal=result.to_dict())


# -------------------------------------------------------------------------------------------------
# Sub-lists & items
# -------------------------------------------------------------------------------------------------

@api_view("POST")
def sublist_items(request: HttpRequest, sublist_id: int) -> JsonResponse:
    data = validate_payload(ItemForm, parse_json_body(request))
    item = item_service.create_item(sublist_id, request.user, data)
    return json_created(item=item)


@api_view("PATCH")
def sublist_detail(request: HttpRequest, sublist_id: int) -> JsonResponse:
    data = validate_payload(SubListForm, parse_json_body(request), partial=True)
    return json_ok(sublist=item_service.update_sublist(sublist_id, request.user.pk, data))


@api_view("GET", "PATCH", "DELETE")
def item_detail(request: HttpRequest, item_id: int) -> JsonResponse:
    if request.method == "GET":
        return json_ok(item=item_service.get_item(item_id, request.user.pk))
    if request.method == "DELETE":
        return json_ok(item=item_service.soft_delete_item(item_id, request.user.pk))

    data = validate_payload(ItemUpdateForm, parse_json_body(request), partial=True)
    return json_ok(item=item_service.update_item(item_id, request.user.pk, data))


@api_view("POST")
def item_claim(request: HttpRequest, item_id: int) -> JsonResponse:
    ClaimArbiter().claim(item_id, request.user.pk)
    return json_ok(item=item_service.get_item(item_id, request.user.pk))


@api_view("POST")
def item_release(request: HttpRequest, item_id: int) -> JsonResponse:
    ClaimArbiter().release(item_id, request.user.pk)
    return json_ok(item=item_service.get_item(item_id, request.user.pk))


@api_view("POST")
def item_mark_bought(request: HttpRequest, item_id: int) -> JsonResponse:
    ClaimArbiter().mark_bought(item_id, request.user.pk)
    return json_ok(item=item_service.get_item(item_id, request.user.pk))


# -------------------------------------------------------------------------------------------------
# Invites
# -------------------------------------------------------------------------------------------------

@api_view("POST")
def invite_accept(request: HttpRequest) -> JsonResponse:
    data = validate_payload(InviteTokenForm, parse_json_body(request))
    collaborator = invite_service.consume_invite_token(data["token"], request.user.pk, request.user.email)
    return json_ok(
        registry_id=collaborator.registry_id,
        collaborator_id=collaborator.pk,
        status=collaborator.status,
    )


@api_view("POST", auth_required=False)
def invite_info(request: HttpRequest) -> JsonResponse:
    data = validate_payload(InviteTokenForm, parse_json_body(request))
    info = invite_service.get_invite_info(data["token"])
    if info is None:
        raise NotFound("Invite")
    return json_ok(invite=info)


@api_view("POST")
def invite_accept_pending(request: HttpRequest) -> JsonResponse:
    accepted = invite_service.accept_pending_invites_by_email(request.user.pk, request.user.email)
    return json_ok(accepted=accepted, count=len(accepted))


# -------------------------------------------------------------------------------------------------
# Profile
# -------------------------------------------------------------------------------------------------

@api_view("GET", "PATCH")
def profile(request: HttpRequest) -> JsonResponse:
    if request.method == "GET":
        return json_ok(profile=profile_service.get_public_profile(request.user.pk))

    data = validate_payload(ProfileForm, parse_json_body(request), partial=True)
    return json_ok(profile=profile_service.update_profile(request.user, data))
