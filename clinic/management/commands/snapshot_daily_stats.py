from datetime import date

from django.core.cache import cache
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from clinic.services.dashboard import build_summary, snapshot_daily_stats, summary_cache_key, SUMMARY_TTL
from clinic.services.realtime import broadcast_refresh


class Command(BaseCommand):
    help = "Write (or overwrite) the DailyStats row for a day, refresh the dashboard cache and broadcast a refresh."

    def add_arguments(self, parser):
        parser.add_argument("--date", help="YYYY-MM-DD, defaults to today")

    def handle(self, *args, **options):
        day = timezone.localdate()
        if options.get("date"):
            try:
                day = date.fromisoformat(options["date"])
            except ValueError as e:
                raise CommandError(f"invalid --date: {e}")

        row, created = snapshot_daily_stats(day)
        ck = summary_cache_key(day)
        cache.set(ck, build_summary(day), SUMMARY_TTL)
        broadcast_refresh([ck, f"daily_stats:{day:%Y-%m-%d}"])

        verb = "Created" if created else "Updated"
        self.stdout.write(self.style.SUCCESS(
            f"{verb} stats for {day}: opd={row.total_opd_patients} admissions={row.total_admissions} "
            f"discharges={row.total_discharges} revenue={row.revenue}"
        ))
