import html

import bleach
from rest_framework import serializers

from clinic.services.filters import ALL


def clean_text(v):
    """Strip HTML tags, keeping characters such as ``<`` and ``&`` as typed."""
    text = (v or '').strip()
    # Encoded markup becomes real markup once unescaped, so strip until stable.
    for _ in range(3):
        cleaned = html.unescape(bleach.clean(text, tags=[], strip=True))
        if cleaned == text:
            break
        text = cleaned
    else:
        text = bleach.clean(text, tags=[], strip=True)
    return text


class CleanCharField(serializers.CharField):
    """CharField whose value has any HTML stripped."""

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))


class IdOrAllField(serializers.Field):
    """Query parameter holding either a numeric id or ``all``."""

    default_error_messages = {'invalid': 'Expected an id or "all".'}

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('default', ALL)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if data in (None, '', ALL):
            return ALL
        try:
            return int(data)
        except (TypeError, ValueError):
            self.fail('invalid')

    def to_representation(self, value):
        return value


def choice_or_all(choices):
    """ChoiceField for a filter dimension: one of ``choices`` or ``all``."""
    values = [c[0] if isinstance(c, (list, tuple)) else c for c in choices]
    return serializers.ChoiceField(choices=[ALL, *values], required=False, default=ALL)
