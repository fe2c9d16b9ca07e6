from django.urls import path
from . import views

app_name = "dashboard"

urlpatterns = [
    # Audit helpers
    path("audit/summary/", views.audit_summary_view, name="audit_summary"),
    path("audit/trail/<str:table_name>/<str:row_id>/", views.audit_trail_view, name="audit_trail"),
    path("audit/purpose/", views.audit_purpose_view, name="audit_purpose"),

    path("contacts/export/", views.export_contacts_view, name="export_contacts"),

    # People
    path("people/", views.people_view, name="people"),
    path("people/<uuid:user_id>/", views.person_view, name="person"),

    # Relationship data
    path("<slug:resource>/", views.collection_view, name="collection"),
    path("<slug:resource>/<uuid:pk>/", views.detail_view, name="detail"),
]
