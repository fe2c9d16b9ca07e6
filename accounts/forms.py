"""Authentication and user management forms."""
from django import forms
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password

from .models import User


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(widget=forms.PasswordInput)

    def __init__(self, request=None, *args, **kwargs):
        self.request = request
        self.user_cache = None
        super().__init__(*args, **kwargs)

    def clean(self):
        email = self.cleaned_data.get("email", "").lower()
        password = self.cleaned_data.get("password")
        if email and password:
            self.user_cache = authenticate(self.request, username=email, password=password)
            if self.user_cache is None:
                raise forms.ValidationError("Invalid email or password.")
            if not self.user_cache.is_active:
                raise forms.ValidationError("This account has been disabled.")
        return self.cleaned_data

    def get_user(self):
        return self.user_cache


class UserCreateForm(forms.ModelForm):
    password = forms.CharField(widget=forms.PasswordInput, validators=[validate_password])

    class Meta:
        model = User
        fields = ["email", "first_name", "last_name", "tenant"]


class UserEditForm(forms.ModelForm):
    class Meta:
        model = User
        fields = ["first_name", "last_name", "tenant", "is_active"]


class ProfileForm(forms.ModelForm):
    """Fields a principal may change on their own record."""

    class Meta:
        model = User
        fields = ["first_name", "last_name"]


class AdminGrantForm(forms.Form):
    """Grant administrator rights to a principal or to an external identity."""
    user = forms.ModelChoiceField(queryset=User.objects.all(), required=False)
    external_id = forms.CharField(max_length=255, required=False)

    def clean(self):
        cd = super().clean()
        if not cd.get("user") and not cd.get("external_id"):
            raise forms.ValidationError("Provide a user or an external identity.")
        return cd
