"""
Appointment lifecycle.

    agendada --check_in--> en_espera --complete--> atendida
        |                      |
        +-------cancel---------+-----> cancelada

Authorization is checked before the current state, so an actor without
rights over an appointment learns nothing about its state.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet

from models.actor import Actor, ActorRole
from models.appointment import Appointment, AppointmentAction, AppointmentState
from utils.exceptions import ForbiddenError, InvalidTransitionError

NON_TERMINAL_STATES = frozenset({AppointmentState.AGENDADA, AppointmentState.EN_ESPERA})

# Roles limited to their own appointments
OWNER_SCOPED_ROLES = frozenset({ActorRole.PATIENT, ActorRole.PRACTITIONER})


@dataclass(frozen=True)
class TransitionRule:
    """Who may perform an action and from which states."""

    from_states: FrozenSet[AppointmentState]
    to_state: AppointmentState
    allowed_roles: FrozenSet[ActorRole]


TRANSITIONS: Dict[AppointmentAction, TransitionRule] = {
    AppointmentAction.CHECK_IN: TransitionRule(
        from_states=frozenset({AppointmentState.AGENDADA}),
        to_state=AppointmentState.EN_ESPERA,
        allowed_roles=frozenset({ActorRole.FRONT_DESK, ActorRole.ADMIN}),
    ),
    AppointmentAction.COMPLETE: TransitionRule(
        from_states=frozenset({AppointmentState.EN_ESPERA}),
        to_state=AppointmentState.ATENDIDA,
        allowed_roles=frozenset({ActorRole.PRACTITIONER}),
    ),
    AppointmentAction.CANCEL: TransitionRule(
        from_states=NON_TERMINAL_STATES,
        to_state=AppointmentState.CANCELADA,
        allowed_roles=frozenset(ActorRole),
    ),
}


def is_owner(appointment: Appointment, actor: Actor) -> bool:
    """True if the actor is the appointment's patient or practitioner."""
    if actor.role == ActorRole.PATIENT:
        return actor.id == appointment.patient_id
    if actor.role == ActorRole.PRACTITIONER:
        return actor.id == appointment.practitioner_id
    return False


def _authorize(appointment: Appointment, actor: Actor, allowed_roles: FrozenSet[ActorRole], what: str) -> None:
    if actor.role not in allowed_roles:
        raise ForbiddenError(f"Role '{actor.role.value}' cannot {what}")
    if actor.role in OWNER_SCOPED_ROLES and not is_owner(appointment, actor):
        raise ForbiddenError(f"Only the appointment's own {actor.role.value} can {what}")


def resolve_transition(appointment: Appointment, action: AppointmentAction, actor: Actor) -> AppointmentState:
    """
    Target state of ``action`` on ``appointment`` performed by ``actor``.

    Raises:
        ForbiddenError: If the actor may not perform the action on this appointment
        InvalidTransitionError: If the action is not allowed from the current state
    """
    rule = TRANSITIONS[action]
    _authorize(appointment, actor, rule.allowed_roles, f"{action.value.replace('_', ' ')} appointments")

    if appointment.state not in rule.from_states:
        raise InvalidTransitionError(
            f"Cannot {action.value.replace('_', ' ')} an appointment in state '{appointment.state.value}'"
        )

    return rule.to_state


def ensure_can_reschedule(appointment: Appointment, actor: Actor) -> None:
    """
    Raises:
        ForbiddenError: If the actor may not move this appointment
        InvalidTransitionError: If the appointment is already terminal
    """
    _authorize(appointment, actor, frozenset(ActorRole), "reschedule appointments")

    if appointment.state.is_terminal:
        raise InvalidTransitionError(
            f"Cannot reschedule an appointment in state '{appointment.state.value}'"
        )


def ensure_can_override(actor: Actor) -> None:
    """
    Raises:
        ForbiddenError: Unless the actor is an administrator
    """
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can override appointment state")
