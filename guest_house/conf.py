from django.conf import settings

DEFAULTS = {
    "DEFAULT_NIGHTLY_RATE": 3500,
    "CURRENCY": "KSh",
    "WHATSAPP_NUMBER": "254712345678",
    "PHONE_NUMBER": "+254712345678",
    "STALE_PENDING_HOURS": 24,
    "SERIALIZE_BOOKINGS": False,
    "FALLBACK_ENABLED": True,
}


def setting(name):
    """Read a key of the GUEST_HOUSE settings dict, falling back to DEFAULTS."""
    overrides = getattr(settings, "GUEST_HOUSE", {})
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
