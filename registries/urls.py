from django.urls import path
from . import views

app_name = "registries"

urlpatterns = [
    # Health checks (for load balancers and monitoring)
    path("health/", views.health_check, name="health"),
    path("health/liveness/", views.liveness_check, name="liveness"),
    path("health/readiness/", views.readiness_check, name="readiness"),

    # Registries
    path("registries/", views.registries_collection, name="registry_list"),
    path("registries/<int:registry_id>/", views.registry_detail, name="registry_detail"),
    path("registries/<int:registry_id>/invites/", views.registry_invites, name="registry_invites"),
    path(
        "registries/<int:registry_id>/collaborators/<int:collaborator_id>/",
        views.registry_collaborator,
        name="registry_collaborator",
    ),

    # Sub-lists & items
    path("sublists/<int:sublist_id>/", views.sublist_detail, name="sublist_detail"),
    path("sublists/<int:sublist_id>/items/", views.sublist_items, name="sublist_items"),
    path("items/<int:item_id>/", views.item_detail, name="item_detail"),

    # Claim arbitration
    path("items/<int:item_id>/claim/", views.item_claim, name="item_claim"),
    path("items/<int:item_id>/release/", views.item_release, name="item_release"),
    path("items/<int:item_id>/mark-bought/", views.item_mark_bought, name="item_mark_bought"),

    # Invite flow
    path("invites/accept/", views.invite_accept, name="invite_accept"),
    path("invites/info/", views.invite_info, name="invite_info"),
    path("invites/accept-pending/", views.invite_accept_pending, name="invite_accept_pending"),

    # Profile
    path("profile/", views.profile, name="profile"),
]
