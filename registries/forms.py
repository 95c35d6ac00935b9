from django import forms

from .constants import (
    MAX_LABEL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TEXT_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_URL_LENGTH,
)


class RegistryForm(forms.Form):
    title = forms.CharField(max_length=MAX_TITLE_LENGTH)
    occasion_date = forms.DateTimeField(required=False)
    deadline = forms.DateTimeField(required=False)
    collaborators_can_invite = forms.BooleanField(required=False)
    allow_secret_gifts = forms.BooleanField(required=False)

    def clean_title(self):
        title = (self.cleaned_data.get("title") or "").strip()
        if not title and self.fields["title"].required:
            raise forms.ValidationError("Title is required.")
        return title

    def clean(self):
        cleaned = super().clean()
        occasion = cleaned.get("occasion_date")
        deadline = cleaned.get("deadline")
        if occasion and deadline and deadline > occasion:
            self.add_error("deadline", "Deadline cannot be after the occasion date.")
        return cleaned


class RegistryUpdateForm(RegistryForm):
    owner_id = forms.IntegerField(required=False, min_value=1)


class InviteEntryForm(forms.Form):
    email = forms.EmailField()
    name = forms.CharField(max_length=MAX_NAME_LENGTH, required=False)

    def clean_email(self):
        return (self.cleaned_data.get("email") or "").strip().lower()


class InitialMemberForm(InviteEntryForm):
    description = forms.CharField(max_length=MAX_TEXT_LENGTH, required=False)


class ItemEntryForm(forms.Form):
    """Label/URL pair used for items pre-filled at registry creation."""
    label = forms.CharField(max_length=MAX_LABEL_LENGTH, required=False)
    url = forms.CharField(max_length=MAX_URL_LENGTH, required=False)


class ItemForm(ItemEntryForm):
    description = forms.CharField(max_length=MAX_TEXT_LENGTH, required=False)
    is_secret = forms.BooleanField(required=False)

    def clean(self):
        cleaned = super().clean()
        if not (cleaned.get("label") or "").strip() and not (cleaned.get("url") or "").strip():
            raise forms.ValidationError("Either label or URL must be provided.")
        return cleaned


class ItemUpdateForm(ItemEntryForm):
    description = forms.CharField(max_length=MAX_TEXT_LENGTH, required=False)


class SubListForm(forms.Form):
    name = forms.CharField(max_length=MAX_TITLE_LENGTH, required=False)
    description = forms.CharField(max_length=MAX_TEXT_LENGTH, required=False)


class InviteTokenForm(forms.Form):
    token = forms.CharField(max_length=64)


class ProfileForm(forms.Form):
    name = forms.CharField(max_length=MAX_NAME_LENGTH, required=False)
