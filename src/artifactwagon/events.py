"""Transfer and session events with listener fan-out."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from artifactwagon.types import RequestType, Resource

logger = logging.getLogger(__name__)


class TransferEventType(str, Enum):
    """Lifecycle points of a single transfer."""

    INITIATED = "initiated"
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    ERROR = "error"


class SessionEventType(str, Enum):
    """Lifecycle points of a connection."""

    OPENING = "opening"
    OPENED = "opened"
    CONNECTION_REFUSED = "connection_refused"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"


@dataclass
class TransferEvent:
    """A transfer notification."""

    event_type: TransferEventType
    request_type: RequestType
    resource: Resource
    local_file: Path | None = None
    error: Exception | None = None


@dataclass
class SessionEvent:
    """A connection notification."""

    event_type: SessionEventType
    locator: str
    error: Exception | None = None


class TransferListener(Protocol):
    """Protocol for observers of artifact transfers."""

    def on_transfer_event(self, event: TransferEvent) -> None:
        """Called at initiated, started, completed and error."""
        ...

    def on_transfer_progress(self, event: TransferEvent, length: int) -> None:
        """Called for every block of bytes moved."""
        ...


class SessionListener(Protocol):
    """Protocol for observers of connection lifecycle."""

    def on_session_event(self, event: SessionEvent) -> None: ...


class EventDispatcher:
    """Fans transfer and session events out to registered listeners."""

    def __init__(self):
        self.transfer_listeners: list[TransferListener] = []
        self.session_listeners: list[SessionListener] = []

    def add_transfer_listener(self, listener: TransferListener) -> None:
        if listener not in self.transfer_listeners:
            self.transfer_listeners.append(listener)

    def remove_transfer_listener(self, listener: TransferListener) -> None:
        if listener in self.transfer_listeners:
            self.transfer_listeners.remove(listener)

    def has_transfer_listener(self, listener: TransferListener) -> bool:
        return listener in self.transfer_listeners

    def add_session_listener(self, listener: SessionListener) -> None:
        if listener not in self.session_listeners:
            self.session_listeners.append(listener)

    def remove_session_listener(self, listener: SessionListener) -> None:
        if listener in self.session_listeners:
            self.session_listeners.remove(listener)

    # Transfer events

    def fire_transfer(
        self,
        event_type: TransferEventType,
        request_type: RequestType,
        resource: Resource,
        local_file: Path | None = None,
        error: Exception | None = None,
    ) -> TransferEvent:
        """Build a transfer event and deliver it to every transfer listener."""
        event = TransferEvent(
            event_type=event_type,
            request_type=request_type,
            resource=resource,
            local_file=local_file,
            error=error,
        )
        if error is not None:
            logger.debug(f"{request_type.value} {resource.name}: {event_type.value} ({error})")
        else:
            logger.debug(f"{request_type.value} {resource.name}: {event_type.value}")
        for listener in list(self.transfer_listeners):
            listener.on_transfer_event(event)
        return event

    def fire_progress(self, event: TransferEvent, length: int) -> None:
        for listener in list(self.transfer_listeners):
            listener.on_transfer_progress(event, length)

    # Session events

    def fire_session(
        self,
        event_type: SessionEventType,
        locator: str,
        error: Exception | None = None,
    ) -> None:
        event = SessionEvent(event_type=event_type, locator=locator, error=error)
        logger.debug(f"Session {locator}: {event_type.value}")
        for listener in list(self.session_listeners):
            listener.on_session_event(event)
