from decimal import Decimal

from django.core.cache import cache
from django.db.models import Sum
from django.utils import timezone

from clinic.models import Admission, Bed, DailyStats, InventoryTransaction, OPDQueue, Patient
from clinic.services.admissions import admission_stats
from clinic.services.beds import bed_stats
from clinic.services.inventory import critical_items_count
from clinic.services.opd import queue_stats

SUMMARY_TTL = 60


def summary_cache_key(day) -> str:
    return f'dashboard:summary:{day:%Y-%m-%d}'


def build_summary(day=None) -> dict:
    day = day or timezone.localdate()
    opd = queue_stats(OPDQueue.objects.filter(queue_date=day).only('status'))
    beds = bed_stats(Bed.objects.only('status', 'bed_type'))
    admissions = admission_stats(day)
    return {
        'date': day.isoformat(),
        'totalPatients': Patient.objects.count(),
        'opd': opd,
        'beds': beds,
        'activeAdmissions': admissions['active'],
        'admissionsToday': admissions['admittedToday'],
        'dischargesToday': admissions['dischargedToday'],
        'criticalInventory': critical_items_count(),
    }


def dashboard_summary(day=None) -> dict:
    """Cached summary for the dashboard's home screen."""
    day = day or timezone.localdate()
    ck = summary_cache_key(day)
    cached = cache.get(ck)
    if cached:
        return cached
    payload = build_summary(day)
    cache.set(ck, payload, SUMMARY_TTL)
    return payload


def snapshot_daily_stats(day=None) -> tuple[DailyStats, bool]:
    """Upsert the :class:`DailyStats` row for ``day``; returns ``(row, created)``."""
    day = day or timezone.localdate()
    dispensed = (
        InventoryTransaction.objects.filter(transaction_type='dispensation', created_at__date=day)
        .values_list('quantity', 'unit_price')
    )
    # Dispensation quantities are negative deltas.
    revenue = sum((-qty * (price or Decimal('0')) for qty, price in dispensed), Decimal('0'))
    discharge_costs = Admission.objects.filter(
        status=Admission.STATUS_DISCHARGED, discharge_date__date=day
    ).aggregate(total=Sum('total_cost'))['total'] or Decimal('0')
    values = {
        'total_opd_patients': OPDQueue.objects.filter(queue_date=day).exclude(status='cancelled').count(),
        'total_admissions': Admission.objects.filter(admission_date__date=day).count(),
        'total_discharges': Admission.objects.filter(
            status=Admission.STATUS_DISCHARGED, discharge_date__date=day
        ).count(),
        'beds_occupied': Bed.objects.filter(status=Bed.STATUS_OCCUPIED).count(),
        'beds_available': Bed.objects.filter(status=Bed.STATUS_AVAILABLE).count(),
        'revenue': revenue + discharge_costs,
    }
    return DailyStats.objects.update_or_create(date=day, defaults=values)


def format_daily_stats(row: DailyStats) -> dict:
    return {
        'date': row.date.isoformat(),
        'totalOpdPatients': row.total_opd_patients,
        'totalAdmissions': row.total_admissions,
        'totalDischarges': row.total_discharges,
        'bedsOccupied': row.beds_occupied,
        'bedsAvailable': row.beds_available,
        'revenue': str(row.revenue),
        'updatedAt': row.updated_at.isoformat(),
    }
