"""
Container Diagnostics - Observability and event tracking for containers.
"""

import time
from typing import Any, Dict, List, Optional, Protocol
from enum import Enum
import dataclasses
import logging

logger = logging.getLogger("kestrel.diagnostics")


class ContainerEventType(Enum):
    """Types of container events."""
    REGISTRATION = "registration"
    RESOLUTION_SUCCESS = "resolution_success"
    RESOLUTION_FAILURE = "resolution_failure"
    RELEASE = "release"


@dataclasses.dataclass
class ContainerEvent:
    """A diagnostic event emitted by a container."""
    type: ContainerEventType
    timestamp: float = dataclasses.field(default_factory=time.time)
    service: Optional[str] = None
    kind: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[BaseException] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)


class DiagnosticListener(Protocol):
    """Interface for container diagnostic listeners."""
    def on_event(self, event: ContainerEvent) -> None:
        """Called when a container event occurs."""
        ...


class LoggingDiagnosticListener:
    """Diagnostic listener that writes events to the ``kestrel.diagnostics`` logger."""
    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def on_event(self, event: ContainerEvent) -> None:
        if event.type == ContainerEventType.REGISTRATION:
            logger.log(self.log_level, f"Registered service '{event.service}' (kind={event.kind})")
        elif event.type == ContainerEventType.RESOLUTION_SUCCESS:
            logger.log(self.log_level, f"Resolved service '{event.service}' in {event.duration:.4f}s")
        elif event.type == ContainerEventType.RESOLUTION_FAILURE:
            logger.log(logging.ERROR, f"Failed to resolve service '{event.service}': {event.error}")
        elif event.type == ContainerEventType.RELEASE:
            logger.log(self.log_level, f"Released shared instance of '{event.service}'")


class RecordingDiagnosticListener:
    """Keeps every event in memory, mostly useful in tests."""
    def __init__(self):
        self.events: List[ContainerEvent] = []

    def on_event(self, event: ContainerEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: ContainerEventType) -> List[ContainerEvent]:
        return [e for e in self.events if e.type == event_type]


class ContainerDiagnostics:
    """Coordinator for container diagnostic listeners."""
    def __init__(self):
        self._listeners: List[DiagnosticListener] = []

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Add a diagnostic listener."""
        self._listeners.append(listener)

    @property
    def enabled(self) -> bool:
        return bool(self._listeners)

    def emit(self, event_type: ContainerEventType, **kwargs) -> None:
        """Emit a diagnostic event to all listeners."""
        if not self._listeners:
            return
        event = ContainerEvent(type=event_type, **kwargs)
        for listener in self._listeners:
            try:
                listener.on_event(event)
            except Exception as e:
                logger.error(f"Diagnostic listener error: {e}")

    def measure(self, service: str, **kwargs):
        """Context manager timing one resolution of ``service``."""
        return _DiagnosticMeasure(self, service, **kwargs)


class _DiagnosticMeasure:
    def __init__(self, diagnostics: ContainerDiagnostics, service: str, **kwargs):
        self.diagnostics = diagnostics
        self.service = service
        self.kwargs = kwargs
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        if exc_type:
            self.diagnostics.emit(
                ContainerEventType.RESOLUTION_FAILURE,
                service=self.service,
                duration=duration,
                error=exc_val,
                **self.kwargs
            )
        else:
            self.diagnostics.emit(
                ContainerEventType.RESOLUTION_SUCCESS,
                service=self.service,
                duration=duration,
                **self.kwargs
            )
        return False
