from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest
from django.utils import timezone

from clinic.services import rules


def aware(*args):
    return timezone.make_aware(datetime(*args))


def test_next_token_starts_at_one_and_never_refills_gaps():
    assert rules.next_token([]) == 1
    assert rules.next_token([1, 2, 3]) == 4
    assert rules.next_token([1, 5]) == 6


def test_wait_time_floors_and_never_goes_negative():
    check_in = aware(2024, 1, 1, 10, 0)
    assert rules.wait_time_minutes(check_in, now=aware(2024, 1, 1, 10, 45, 59)) == 45
    assert rules.wait_time_minutes(check_in, now=aware(2024, 1, 1, 9, 30)) == 0


def test_stay_duration_rounds_up_with_minimum_of_one_day():
    admitted = aware(2024, 1, 1, 10, 0)
    assert rules.stay_duration_days(admitted, admitted) == 1
    assert rules.stay_duration_days(admitted, aware(2024, 1, 1, 15, 0)) == 1
    assert rules.stay_duration_days(admitted, aware(2024, 1, 3, 11, 0)) == 3
    assert rules.stay_duration_days(admitted, now=aware(2024, 1, 2, 10, 0)) == 1


def test_age_respects_birthday():
    dob = date(1990, 5, 17)
    assert rules.age_years(dob, today=date(2024, 5, 16)) == 33
    assert rules.age_years(dob, today=date(2024, 5, 17)) == 34


@pytest.mark.parametrize('current,minimum,expected', [
    (20, 10, 'healthy'),
    (19, 10, 'low'),
    (10, 10, 'low'),
    (9, 10, 'critical'),
    (0, 0, 'healthy'),
])
def test_stock_status_thresholds(current, minimum, expected):
    assert rules.stock_status(current, minimum) == expected


def test_stock_status_rejects_negative_levels():
    with pytest.raises(ValueError):
        rules.stock_status(-1, 10)


def test_expiry_window_is_inclusive_and_excludes_expired():
    now = aware(2024, 1, 1, 12, 0)
    assert rules.is_expiring_soon(date(2024, 1, 31), 30, now=now)
    assert not rules.is_expiring_soon(date(2024, 2, 1), 30, now=now)
    assert rules.is_expiring_soon(date(2024, 1, 1), 30, now=now)
    assert not rules.is_expiring_soon(date(2023, 12, 31), 30, now=now)
    assert rules.is_expired(date(2023, 12, 31), now=now)
    assert not rules.is_expired(date(2024, 1, 1), now=now)


def test_expiry_with_datetime_uses_floored_day_difference():
    now = aware(2024, 1, 1, 12, 0)
    assert rules.days_until_expiry(now + timedelta(days=2, hours=23), now=now) == 2
    assert rules.days_until_expiry(now - timedelta(hours=1), now=now) == -1


@pytest.mark.parametrize('occupied,total,expected', [
    (0, 0, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (4, 4, 100),
    (5, 4, 100),
])
def test_occupancy_rate(occupied, total, expected):
    assert rules.occupancy_rate(occupied, total) == expected


def test_patient_number_format():
    now = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
    number = rules.generate_patient_number(now)
    assert number.startswith('PAT67200000')
    assert len(number) == 14
    assert number[3:].isdigit()
