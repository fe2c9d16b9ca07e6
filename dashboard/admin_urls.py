from django.urls import path
from . import admin_views

app_name = "admin_panel"

urlpatterns = [
    # Tenant management
    path("tenants/", admin_views.tenant_list_view, name="tenant_list"),
    path("tenants/<uuid:tenant_id>/", admin_views.tenant_detail_view, name="tenant_detail"),

    # User management
    path("users/", admin_views.user_list_view, name="user_list"),
    path("users/<uuid:user_id>/", admin_views.user_edit_view, name="user_edit"),

    # Administrator roster
    path("roster/", admin_views.roster_view, name="roster"),
    path("roster/<uuid:entry_id>/revoke/", admin_views.roster_revoke_view, name="roster_revoke"),

    # Audit log and reports
    path("audit/", admin_views.audit_log_view, name="audit_log"),
    path("reports/<slug:name>/", admin_views.report_view, name="report"),
    path("access-policy/", admin_views.access_policy_view, name="access_policy"),
]
