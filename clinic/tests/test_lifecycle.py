import pytest

from clinic.exceptions import TransitionError
from clinic.services import lifecycle


@pytest.mark.parametrize('machine,current,new', [
    (lifecycle.OPD_QUEUE, 'waiting', 'in_consultation'),
    (lifecycle.OPD_QUEUE, 'waiting', 'cancelled'),
    (lifecycle.OPD_QUEUE, 'in_consultation', 'completed'),
    (lifecycle.ADMISSION, 'admitted', 'discharged'),
    (lifecycle.ADMISSION, 'admitted', 'transferred'),
    (lifecycle.APPOINTMENT, 'scheduled', 'confirmed'),
    (lifecycle.APPOINTMENT, 'confirmed', 'in_progress'),
    (lifecycle.APPOINTMENT, 'in_progress', 'completed'),
    (lifecycle.APPOINTMENT, 'in_progress', 'no_show'),
    (lifecycle.PRESCRIPTION, 'pending', 'dispensed'),
    (lifecycle.PRESCRIPTION, 'pending', 'cancelled'),
])
def test_allowed_edges(machine, current, new):
    assert lifecycle.can_transition(machine, current, new)
    lifecycle.ensure_transition(machine, current, new)


@pytest.mark.parametrize('machine,current,new', [
    (lifecycle.OPD_QUEUE, 'waiting', 'completed'),
    (lifecycle.OPD_QUEUE, 'in_consultation', 'cancelled'),
    (lifecycle.OPD_QUEUE, 'completed', 'waiting'),
    (lifecycle.OPD_QUEUE, 'waiting', 'waiting'),
    (lifecycle.ADMISSION, 'discharged', 'admitted'),
    (lifecycle.APPOINTMENT, 'cancelled', 'scheduled'),
    (lifecycle.APPOINTMENT, 'scheduled', 'completed'),
    (lifecycle.PRESCRIPTION, 'dispensed', 'cancelled'),
])
def test_rejected_edges(machine, current, new):
    assert not lifecycle.can_transition(machine, current, new)
    with pytest.raises(TransitionError):
        lifecycle.ensure_transition(machine, current, new)


def test_terminal_states_have_no_exits():
    for machine, edges in lifecycle.MACHINES.items():
        for state, targets in edges.items():
            assert lifecycle.is_terminal(machine, state) == (not targets)
    assert lifecycle.is_terminal(lifecycle.OPD_QUEUE, 'completed')
    assert not lifecycle.is_terminal(lifecycle.APPOINTMENT, 'confirmed')


def test_bed_status_change_guards_occupancy():
    lifecycle.validate_bed_status_change('available', 'maintenance', has_active_admission=False)
    lifecycle.validate_bed_status_change('maintenance', 'available', has_active_admission=False)
    lifecycle.validate_bed_status_change('occupied', 'occupied', has_active_admission=True)
    with pytest.raises(TransitionError):
        lifecycle.validate_bed_status_change('available', 'occupied', has_active_admission=False)
    with pytest.raises(TransitionError):
        lifecycle.validate_bed_status_change('occupied', 'available', has_active_admission=True)
