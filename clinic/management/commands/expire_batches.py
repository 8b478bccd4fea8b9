from django.core.management.base import BaseCommand

from clinic.services.inventory import expire_batches


class Command(BaseCommand):
    help = "Mark active inventory batches whose expiry date has passed as expired."

    def handle(self, *args, **options):
        count = expire_batches()
        self.stdout.write(self.style.SUCCESS(f"Expired {count} batches"))
