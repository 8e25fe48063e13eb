"""
Basic unit tests for engine vocabulary.
"""

from pathlib import Path

from models.actor import Actor, ActorRole
from models.appointment import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    AppointmentAction,
    AppointmentState,
)
from utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)


def test_appointment_state_enum():
    """Test appointment state values."""
    assert AppointmentState.AGENDADA.value == "agendada"
    assert AppointmentState.EN_ESPERA.value == "en_espera"
    assert AppointmentState.ATENDIDA.value == "atendida"
    assert AppointmentState.CANCELADA.value == "cancelada"


def test_terminal_states():
    """Completed and cancelled appointments are terminal."""
    assert TERMINAL_STATES == {AppointmentState.ATENDIDA, AppointmentState.CANCELADA}
    assert AppointmentState.ATENDIDA.is_terminal
    assert not AppointmentState.EN_ESPERA.is_terminal


def test_only_cancelled_frees_calendar():
    """Every state except cancelled occupies the calendar."""
    assert AppointmentState.CANCELADA not in ACTIVE_STATES
    assert not AppointmentState.CANCELADA.occupies_calendar
    assert AppointmentState.ATENDIDA.occupies_calendar


def test_action_enum():
    """Test lifecycle action values."""
    assert {a.value for a in AppointmentAction} == {"check_in", "complete", "cancel"}


def test_actor_is_admin():
    assert Actor(id="a", role=ActorRole.ADMIN).is_admin
    assert not Actor(id="b", role=ActorRole.FRONT_DESK).is_admin


def test_error_kinds():
    """Operational errors expose a stable kind."""
    assert NotFoundError("x").kind == "not_found"
    assert ConflictError("x").kind == "conflict"
    assert InvalidTransitionError("x").kind == "invalid_transition"
    assert ForbiddenError("x").kind == "forbidden"
    assert ValidationError("x").kind == "validation"
    assert InternalError("x").kind == "internal"
    assert StoreUnavailableError("x").kind == "internal"
    assert ConflictError("busy").to_dict() == {"kind": "conflict", "message": "busy"}


def test_project_packages_do_not_shadow_dependencies():
    """The supabase client imports its own ``realtime`` distribution."""
    import realtime
    from supabase import create_client  # noqa: F401

    project_root = Path(__file__).resolve().parents[1]
    assert project_root not in Path(realtime.__file__).resolve().parents
