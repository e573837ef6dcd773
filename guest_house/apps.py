from django.apps import AppConfig


class GuestHouseConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "guest_house"
    verbose_name = "Guest house bookings"

    def ready(self):
        from .store import DjangoStore, MemoryStore

        self.live_store = DjangoStore()
        self.fallback_store = MemoryStore()
