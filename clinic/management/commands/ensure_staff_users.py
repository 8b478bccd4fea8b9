from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

User = get_user_model()

STAFF_SET = [
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("nurse1", "nurse"),
    ("reception1", "receptionist"),
    ("pharmacist1", "pharmacist"),
    ("store1", "inventory_manager"),
]


class Command(BaseCommand):
    help = "Ensure one staff user per role exists with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="changeme123")

    def handle(self, *args, **opts):
        for username, role in STAFF_SET:
            u, created = User.objects.get_or_create(username=username, defaults={"role": role, "is_active": True})
            u.role = role
            u.is_active = True
            u.is_staff = role == "admin"
            u.set_password(opts["password"])
            u.save()
            self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All staff users ensured."))
