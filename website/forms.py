import re

from django import forms
from django.conf import settings

from payments.validation import EMAIL_PATTERN

FULL_NAME_PATTERN = re.compile(r'^[a-zA-Z\s]{3,50}$')
PHONE_PATTERN = re.compile(r'^\+?[0-9]{10,15}$')
MOTIVATION_MIN_WORDS = 100
MOTIVATION_MAX_WORDS = 500

PROJECT_STATUS_CHOICES = [
    ('active', 'Active'),
    ('completed', 'Completed'),
]


def count_words(text):
    return len((text or '').split())


def country_choices(blank_label):
    return [('', blank_label)] + [(c, c) for c in settings.COUNTRIES]


class ApplicationForm(forms.Form):
    full_name = forms.CharField(
        label='Full Name', error_messages={'required': 'Full name is required'},
        widget=forms.TextInput(attrs={'placeholder': 'Your full name'}),
    )
    email = forms.CharField(
        label='Email Address', error_messages={'required': 'Email is required'},
        widget=forms.EmailInput(attrs={'placeholder': 'you@example.com'}),
    )
    phone = forms.CharField(
        label='Phone Number', error_messages={'required': 'Phone number is required'},
        widget=forms.TextInput(attrs={'inputmode': 'tel', 'placeholder': '+233201234567'}),
    )
    country = forms.ChoiceField(
        label='Country', error_messages={'required': 'Please select your country'},
    )
    motivation = forms.CharField(
        label='Why do you want to join?', error_messages={'required': 'Motivation is required'},
        widget=forms.Textarea(attrs={'rows': 8}),
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['country'].choices = country_choices('Select your country')
        for field_name, field in self.fields.items():
            base_class = 'form-select' if field_name == 'country' else 'form-control'
            existing = field.widget.attrs.get('class', '')
            field.widget.attrs['class'] = (existing + ' ' + base_class + ' apply-field').strip()
            field.widget.attrs.setdefault('aria-label', field.label)

    def clean_full_name(self):
        value = self.cleaned_data['full_name']
        if not FULL_NAME_PATTERN.match(value):
            raise forms.ValidationError('Name must be 3-50 characters, letters and spaces only')
        return value

    def clean_email(self):
        value = self.cleaned_data['email'].strip()
        if not EMAIL_PATTERN.match(value):
            raise forms.ValidationError('Invalid email format')
        return value

    def clean_phone(self):
        value = self.cleaned_data['phone']
        if not PHONE_PATTERN.match(value):
            raise forms.ValidationError('Phone must be 10-15 digits, can start with +')
        return value

    def clean_motivation(self):
        value = self.cleaned_data['motivation']
        words = count_words(value)
        if words < MOTIVATION_MIN_WORDS:
            raise forms.ValidationError(
                f"Motivation must be at least {MOTIVATION_MIN_WORDS} words (current: {words})")
        if words > MOTIVATION_MAX_WORDS:
            raise forms.ValidationError(
                f"Motivation must not exceed {MOTIVATION_MAX_WORDS} words (current: {words})")
        return value


class AdminLoginForm(forms.Form):
    username = forms.CharField(max_length=150, widget=forms.TextInput(attrs={'autofocus': True}))
    password = forms.CharField(strip=False, widget=forms.PasswordInput)


class ProjectForm(forms.Form):
    name = forms.CharField(max_length=200)
    description = forms.CharField(widget=forms.Textarea(attrs={'rows': 6}))
    country = forms.ChoiceField()
    beneficiaries_count = forms.IntegerField(min_value=0)
    budget = forms.DecimalField(min_value=0, max_digits=12, decimal_places=2)
    status = forms.ChoiceField(choices=PROJECT_STATUS_CHOICES, initial='active')
    # Public id of the cover image on the media host
    cloudinary_public_id = forms.CharField(required=False, max_length=255)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['country'].choices = country_choices('Select a country')

    def as_payload(self):
        data = dict(self.cleaned_data)
        data['budget'] = float(data['budget'])
        if not data.get('cloudinary_public_id'):
            data.pop('cloudinary_public_id', None)
        return data


class SiteSettingsForm(forms.Form):
    site_name = forms.CharField(max_length=200)
    hero_heading = forms.CharField(max_length=300)
    hero_description = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}))
    hero_video_url = forms.URLField(required=False)
    mission_statement = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}))
    vision_statement = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}))
    office_hours = forms.CharField(required=False, max_length=200)
    response_time = forms.CharField(required=False, max_length=200)


class BackOfficeForm(forms.Form):
    """Admin form whose cleaned data is sent to the backend as-is; blank optional fields go as null."""

    def as_payload(self):
        return {
            name: (None if value == '' and not self.fields[name].required else value)
            for name, value in self.cleaned_data.items()
        }


class ContactInfoForm(BackOfficeForm):
    label = forms.CharField(max_length=100)
    value = forms.CharField(max_length=255)
    link = forms.CharField(required=False, max_length=255)
    icon = forms.CharField(max_length=50)
    order_position = forms.IntegerField(min_value=0, initial=0)


class SocialMediaForm(BackOfficeForm):
    platform = forms.CharField(max_length=50, help_text='Lowercase key, e.g. facebook')
    platform_name = forms.CharField(max_length=100)
    url = forms.URLField(max_length=255)
    icon = forms.CharField(required=False, max_length=50)
    color_class = forms.CharField(required=False, max_length=100)
    is_active = forms.BooleanField(required=False, initial=True)

    def as_payload(self):
        data = super().as_payload()
        data['is_active'] = bool(self.cleaned_data.get('is_active'))
        return data


class RegionalOfficeForm(BackOfficeForm):
    country = forms.ChoiceField()
    email = forms.EmailField()
    phone = forms.CharField(max_length=50)
    address = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))
    is_active = forms.BooleanField(required=False, initial=True)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['country'].choices = country_choices('Select a country')

    def as_payload(self):
        data = super().as_payload()
        data['is_active'] = bool(self.cleaned_data.get('is_active'))
        return data


class CoreValueForm(BackOfficeForm):
    title = forms.CharField(max_length=100)
    description = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}))
    icon = forms.CharField(max_length=50)


class TeamRoleForm(BackOfficeForm):
    role_title = forms.CharField(max_length=100)
    responsibilities = forms.CharField(widget=forms.Textarea(attrs={'rows': 3}))


TEAM_ROLE_TYPE_CHOICES = [
    ('executive', 'Executive'),
    ('board', 'Board'),
    ('volunteer', 'Volunteer'),
    ('advisor', 'Advisor'),
]


class FounderForm(BackOfficeForm):
    name = forms.CharField(max_length=100)
    title = forms.CharField(max_length=100)
    bio = forms.CharField(widget=forms.Textarea(attrs={'rows': 6}))
    # Public id of the portrait on the media host
    image_public_id = forms.CharField(required=False, max_length=255)
    email = forms.EmailField(required=False)
    linkedin_url = forms.URLField(required=False)
    twitter_url = forms.URLField(required=False)


class TeamMemberForm(BackOfficeForm):
    name = forms.CharField(max_length=100)
    position = forms.CharField(max_length=100)
    role_type = forms.ChoiceField(choices=TEAM_ROLE_TYPE_CHOICES, initial='volunteer')
    bio = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 4}))
    image_public_id = forms.CharField(required=False, max_length=255)
    email = forms.EmailField(required=False)
    linkedin_url = forms.URLField(required=False)
    twitter_url = forms.URLField(required=False)
    country = forms.ChoiceField(required=False)
    order_position = forms.IntegerField(min_value=0, initial=0)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['country'].choices = country_choices('No country')


class PageContentForm(BackOfficeForm):
    """One text area per key of a page's content; the keys come from the backend."""

    def __init__(self, *args, content=None, **kwargs):
        super().__init__(*args, **kwargs)
        for key in sorted(content or {}):
            self.fields[key] = forms.CharField(
                label=key.replace('_', ' ').capitalize(),
                required=False,
                widget=forms.Textarea(attrs={'rows': 3}),
            )
        if not self.is_bound:
            self.initial = dict(content or {})

    def as_payload(self):
        # Page content is a flat string map; blanks stay blank
        return dict(self.cleaned_data)


class ProjectImageForm(BackOfficeForm):
    cloudinary_public_id = forms.CharField(label='Image public id', max_length=255)
    caption = forms.CharField(required=False, max_length=255)
