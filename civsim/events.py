"""Append helpers for the state's event logs."""
from __future__ import annotations
from typing import Optional
from .types import (
    CivGameState, TurnEvent, TurnEventType, Notification, NotificationType, CameraEvent,
)


def add_turn_event(state: CivGameState, type: TurnEventType, message: str,
                   civ_id: Optional[str] = None) -> TurnEvent:
    event = TurnEvent(id=state.next_id("evt_"), turn=state.turn, type=type,
                      message=message, civ_id=civ_id)
    state.turn_events.append(event)
    return event


def add_notification(state: CivGameState, type: NotificationType, message: str,
                     civ_id: Optional[str] = None, x: Optional[int] = None,
                     y: Optional[int] = None) -> Notification:
    note = Notification(id=state.next_id("note_"), turn=state.turn, type=type,
                        message=message, civ_id=civ_id, x=x, y=y)
    state.notifications.append(note)
    return note


def add_camera_event(state: CivGameState, type: str, x: int, y: int) -> None:
    state.camera_events.append(CameraEvent(type=type, x=x, y=y, turn=state.turn))
