"""
Explicit filter structs for list screens.

Every filterable dimension holds either a concrete value or the
:data:`ALL` sentinel; nothing is filtered on a dimension set to ``ALL``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

ALL = 'all'

IdOrAll = Union[int, str]


def is_set(value) -> bool:
    return value is not None and value != ALL


@dataclass(frozen=True)
class QueueFilter:
    day: date
    department_id: IdOrAll = ALL
    status: str = ALL
    doctor_id: IdOrAll = ALL


@dataclass(frozen=True)
class BedFilter:
    department_id: IdOrAll = ALL
    status: str = ALL
    bed_type: str = ALL


@dataclass(frozen=True)
class AdmissionFilter:
    status: str = 'admitted'
    department_id: IdOrAll = ALL


@dataclass(frozen=True)
class InventoryFilter:
    category_id: IdOrAll = ALL
    item_type: str = ALL
    stock: str = ALL
    q: Optional[str] = None


@dataclass(frozen=True)
class PrescriptionFilter:
    status: str = ALL
    patient_id: IdOrAll = ALL
    doctor_id: IdOrAll = ALL


@dataclass(frozen=True)
class AppointmentFilter:
    day: Optional[date] = None
    doctor_id: IdOrAll = ALL
    department_id: IdOrAll = ALL
    status: str = ALL
