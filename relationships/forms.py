"""Forms validating JSON payloads for relationship data."""
from django import forms
from .models import Contact, Note, Organization, Position, Relationship


class OrganizationForm(forms.ModelForm):
    class Meta:
        model = Organization
        fields = ["name", "sector", "website"]


class RelationshipForm(forms.ModelForm):
    """``tenant`` is optional: the repository fills it in from the actor."""

    class Meta:
        model = Relationship
        fields = ["tenant", "organization", "relationship_type", "priority", "summary"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["tenant"].required = False


class ContactForm(forms.ModelForm):
    class Meta:
        model = Contact
        fields = ["tenant", "organization", "name", "email", "phone", "title"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["tenant"].required = False


class NoteForm(forms.ModelForm):
    """``relationships`` limits the choices to the rows the actor can see.

    A hidden relationship is then rejected exactly like one that does not
    exist.
    """

    class Meta:
        model = Note
        fields = ["tenant", "relationship", "body"]

    def __init__(self, *args, relationships=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["tenant"].required = False
        if relationships is not None:
            self.fields["relationship"].queryset = relationships


class PositionForm(forms.ModelForm):
    class Meta:
        model = Position
        fields = ["organization", "topic", "stance", "summary"]


def changed_values(form, keys):
    """Cleaned values for ``keys`` (the submitted ones), as repository kwargs.

    Foreign keys are returned under their ``*_id`` attname so a partial update
    never loads the related row.
    """
    values = {}
    for name in keys:
        if name not in form.cleaned_data:
            continue
        field = form._meta.model._meta.get_field(name)
        value = form.cleaned_data[name]
        if field.is_relation:
            values[field.attname] = value.pk if value is not None else None
        else:
            values[name] = value
    return values
