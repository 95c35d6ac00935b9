from django.contrib import admin
from .models import Registry, Collaborator, SubList, Item
from .models import InviteToken, UserProfile


@admin.register(Registry)
class RegistryAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "occasion_date", "collaborators_can_invite", "allow_secret_gifts", "created_at")
    list_filter = ("collaborators_can_invite", "allow_secret_gifts", "created_at")
    search_fields = ("title", "owner__username", "owner__email")

@admin.register(Collaborator)
class CollaboratorAdmin(admin.ModelAdmin):
    list_display = ("registry", "email", "user", "status", "created_at", "accepted_at")
    list_filter = ("status",)
    list_select_related = ("registry", "user")
    search_fields = ("email", "name", "registry__title")
    readonly_fields = ("status", "created_at", "accepted_at", "removed_at")

@admin.register(SubList)
class SubListAdmin(admin.ModelAdmin):
    list_display = ("name", "registry", "collaborator", "created_at")
    list_select_related = ("registry", "collaborator")
    search_fields = ("name", "registry__title", "collaborator__email")

@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    """
    Claim fields are read-only here: changing them by hand would bypass the
    claim arbiter's row locking.
    """
    list_display = ("__str__", "sublist", "status", "is_secret", "claimed_by", "deleted_at", "created_at")
    list_filter = ("status", "is_secret")
    list_select_related = ("sublist", "claimed_by")
    search_fields = ("label", "url", "sublist__name")
    readonly_fields = ("status", "claimed_by", "claimed_at", "bought_at", "created_at", "deleted_at", "deleted_by")

@admin.register(InviteToken)
class InviteTokenAdmin(admin.ModelAdmin):
    list_display = ("email", "registry", "collaborator", "used", "expires_at", "created_at")
    list_filter = ("used",)
    search_fields = ("email", "registry__title")
    readonly_fields = ("token", "created_at")

@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "display_name")
    search_fields = ("user__username", "user__email", "display_name")
