from django.contrib import admin
from .models import AdminRosterEntry, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "first_name", "last_name", "tenant", "is_active")
    list_filter = ("is_active", "tenant")
    search_fields = ("email", "first_name", "last_name")
    exclude = ("password",)


@admin.register(AdminRosterEntry)
class AdminRosterEntryAdmin(admin.ModelAdmin):
    list_display = ("identity", "active", "granted_by_id", "created_at")
    list_filter = ("active",)

    def has_delete_permission(self, request, obj=None):
        return False
