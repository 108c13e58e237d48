# ara_mpp/component.py
"""
Component Contract
==================

What a concrete component must provide:

    component_name  - identity; prefixes every belief subject it may assert
    apply_config()  - merge an inbound JSON document into internal state
    on_message()    - generic handling, called after apply_config()
    snapshot()      - full externally visible state as JSON

What the runtime gives back once the component is attached to a
Scheduler:

    commit()     - assert a belief (announced to the belief sink)
    send()       - send to an arbitrary port
    send_bus()   - send to the fleet bus
    send_sink()  - send to the belief sink
    reply()      - send to the last sender on the data socket
    now_ms()     - runtime clock
    stop()       - leave the run loop

Class attributes `publish_period_ms` and `listen_bus` are the component's
defaults; MppConfig may override both.

Example:
    class Ping(Component):
        component_name = "PNG"

        def apply_config(self, envelope):
            if isinstance(envelope, dict) and envelope.get("ping"):
                self.reply({"pong": self.sba})

        def on_message(self, envelope):
            pass

        def snapshot(self):
            return {"component": "PNG", "sba": self.sba}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

from .belief import CommitOutcome
from .codec import EnvelopeDecodeError

if TYPE_CHECKING:
    from .scheduler import Scheduler


class ComponentNotAttached(RuntimeError):
    """A runtime service was used before the component joined a Scheduler."""


class Component(ABC):
    """Base class for every MPP component."""

    component_name: str = ""
    publish_period_ms: int = 0
    listen_bus: bool = False

    _scheduler: Optional["Scheduler"] = None

    def attach(self, scheduler: "Scheduler") -> None:
        self._scheduler = scheduler

    @property
    def scheduler(self) -> "Scheduler":
        if self._scheduler is None:
            raise ComponentNotAttached(
                f"{type(self).__name__} is not attached to a Scheduler"
            )
        return self._scheduler

    @property
    def sba(self) -> Optional[int]:
        """The component's data port, once attached."""
        if self._scheduler is None:
            return None
        return self._scheduler.sba

    # =========================================================================
    # Hooks
    # =========================================================================

    @abstractmethod
    def apply_config(self, envelope: Any) -> None:
        """Merge an inbound document into state; may commit beliefs."""

    @abstractmethod
    def on_message(self, envelope: Any) -> None:
        """Handle any inbound document (after apply_config)."""

    @abstractmethod
    def snapshot(self) -> Dict[str, Any]:
        """Full externally visible state."""

    def publish_snapshot(self) -> None:
        """Called by the publisher; defaults to broadcasting the snapshot."""
        self.send_bus(self.snapshot())

    def on_parse_error(self, error: EnvelopeDecodeError) -> None:
        """Called when an inbound payload is not valid JSON."""

    # =========================================================================
    # Runtime services
    # =========================================================================

    def commit(
        self,
        subject: str,
        polarity: bool,
        context: Any = None,
    ) -> CommitOutcome:
        return self.scheduler.beliefs.commit(subject, polarity, context)

    def send(self, envelope: Any, port: int) -> bool:
        return self.scheduler.transport.send(envelope, port)

    def send_bus(self, envelope: Any) -> bool:
        return self.scheduler.transport.send_bus(envelope)

    def send_sink(self, envelope: Any) -> bool:
        return self.scheduler.transport.send_sink(envelope)

    def reply(self, envelope: Any) -> bool:
        return self.scheduler.transport.reply(envelope)

    def now_ms(self) -> float:
        return self.scheduler.clock()

    def stop(self) -> None:
        self.scheduler.stop()


__all__ = [
    'Component',
    'ComponentNotAttached',
]
