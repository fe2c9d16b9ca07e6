from django.contrib import admin
from .models import Contact, Note, Organization, Position, Relationship


class PositionInline(admin.TabularInline):
    model = Position
    extra = 1


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "sector", "created_at")
    search_fields = ("name",)
    inlines = [PositionInline]


@admin.register(Relationship)
class RelationshipAdmin(admin.ModelAdmin):
    list_display = ("organization", "tenant", "relationship_type", "priority", "updated_at")
    list_filter = ("priority", "tenant")


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "organization", "tenant")
    list_filter = ("tenant",)


@admin.register(Note)
class NoteAdmin(admin.ModelAdmin):
    list_display = ("__str__", "relationship", "tenant", "created_at")
    list_filter = ("tenant",)
