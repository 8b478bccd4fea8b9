"""
Status lifecycles for queue entries, admissions, appointments and
prescriptions.

Each machine lists, for every state, the states it may move to.  A
state with no outgoing edges is terminal.  Beds are deliberately not a
machine: operators may move a bed between any statuses, except where
that would break the bed/admission coupling.
"""
from __future__ import annotations

from clinic.exceptions import TransitionError

OPD_QUEUE = 'opd_queue'
ADMISSION = 'admission'
APPOINTMENT = 'appointment'
PRESCRIPTION = 'prescription'

MACHINES: dict[str, dict[str, tuple[str, ...]]] = {
    OPD_QUEUE: {
        'waiting': ('in_consultation', 'cancelled'),
        'in_consultation': ('completed',),
        'completed': (),
        'cancelled': (),
    },
    ADMISSION: {
        'admitted': ('discharged', 'transferred'),
        'discharged': (),
        'transferred': (),
    },
    APPOINTMENT: {
        'scheduled': ('confirmed', 'cancelled', 'no_show'),
        'confirmed': ('in_progress', 'cancelled', 'no_show'),
        'in_progress': ('completed', 'no_show'),
        'completed': (),
        'cancelled': (),
        'no_show': (),
    },
    PRESCRIPTION: {
        'pending': ('dispensed', 'cancelled'),
        'dispensed': (),
        'cancelled': (),
    },
}

INITIAL_STATES = {
    OPD_QUEUE: 'waiting',
    ADMISSION: 'admitted',
    APPOINTMENT: 'scheduled',
    PRESCRIPTION: 'pending',
}


def can_transition(machine: str, current: str, new: str) -> bool:
    """Return True if ``current -> new`` is an edge of ``machine``."""
    return new in MACHINES[machine].get(current, ())


def ensure_transition(machine: str, current: str, new: str) -> None:
    if not can_transition(machine, current, new):
        raise TransitionError(machine, current, new)


def is_terminal(machine: str, state: str) -> bool:
    return not MACHINES[machine].get(state)


def validate_bed_status_change(current: str, new: str, has_active_admission: bool) -> None:
    """Reject manual bed edits that would desynchronise bed and admission.

    ``occupied`` is entered only by admitting a patient, and a bed held
    by an active admission leaves ``occupied`` only by discharge or
    transfer.
    """
    if current == new:
        return
    if new == 'occupied':
        raise TransitionError('bed', current, new)
    if has_active_admission:
        raise TransitionError('bed', current, new)
