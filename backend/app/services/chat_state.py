"""
Chat session state machine.

Pure transition table for session status. Callers look up the target
status for an event here before persisting anything, so an illegal request
fails without touching state.
"""

from __future__ import annotations

from typing import Optional

from app.core.exceptions import InvalidTransitionError
from app.models.enums import SessionEvent, SessionStatus

S = SessionStatus
E = SessionEvent

TRANSITIONS: dict[tuple[Optional[SessionStatus], SessionEvent], SessionStatus] = {
    (None, E.OPEN): S.WAITING,
    (S.WAITING, E.ASSIGN): S.ASSIGNED,
    # Messages keep the stored status; ACTIVE is the engaged sub-state of ASSIGNED.
    (S.WAITING, E.MESSAGE): S.WAITING,
    (S.ASSIGNED, E.MESSAGE): S.ASSIGNED,
    (S.ACTIVE, E.MESSAGE): S.ACTIVE,
    (S.ASSIGNED, E.ACTIVATE): S.ACTIVE,
    (S.ASSIGNED, E.RESOLVE): S.RESOLVED,
    (S.ACTIVE, E.RESOLVE): S.RESOLVED,
    (S.WAITING, E.CLOSE): S.CLOSED,
    (S.ASSIGNED, E.CLOSE): S.CLOSED,
    (S.ACTIVE, E.CLOSE): S.CLOSED,
    (S.RESOLVED, E.CLOSE): S.CLOSED,
    (S.RESOLVED, E.REOPEN): S.WAITING,
    (S.CLOSED, E.REOPEN): S.WAITING,
    (S.WAITING, E.CANCEL): S.CLOSED,
    (S.ASSIGNED, E.CANCEL): S.CLOSED,
    (S.ACTIVE, E.CANCEL): S.CLOSED,
}

# Admin status requests and the event each one stands for.
TARGET_EVENTS: dict[SessionStatus, SessionEvent] = {
    S.ASSIGNED: E.ASSIGN,
    S.ACTIVE: E.ACTIVATE,
    S.RESOLVED: E.RESOLVE,
    S.CLOSED: E.CLOSE,
}


def transition(current: Optional[SessionStatus], event: SessionEvent) -> SessionStatus:
    """
    Resolve the status an event leads to.

    Raises:
        InvalidTransitionError: If the event is not allowed from ``current``
    """
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError(current, event)
    return target


def can_transition(current: Optional[SessionStatus], event: SessionEvent) -> bool:
    return (current, event) in TRANSITIONS


def event_for_target(current: SessionStatus, target: SessionStatus) -> SessionEvent:
    """
    Map a requested target status to the event that reaches it.

    WAITING cannot be requested directly; only a visitor message reopens a
    session.

    Raises:
        InvalidTransitionError: If no event leads from ``current`` to ``target``
    """
    event = TARGET_EVENTS.get(target)
    if event is None or TRANSITIONS.get((current, event)) != target:
        raise InvalidTransitionError(current, target)
    return event
