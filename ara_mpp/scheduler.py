# ara_mpp/scheduler.py
"""
Component Scheduler
===================

The run loop that ties one component to its transport, belief store,
dispatcher and publisher.

Per tick, in order:
    1. poll data socket  -> dispatch at most one envelope
    2. poll bus socket   -> dispatch at most one envelope (if listening)
    3. evaluate publisher
    4. wait for readiness of either socket or the next publish deadline

At most one message per socket is serviced per tick no matter how many are
queued; the rest wait in the OS receive buffer.

States:
    RUNNING -> STOPPED   via stop() (from a hook) or close()

If the transport failed to bind, run() logs the startup line and returns
without entering the loop.

Usage:
    scheduler = Scheduler(MyComponent(), sba=4010)
    scheduler.run()
"""

from __future__ import annotations

import logging
import selectors
import threading
from enum import Enum
from typing import Callable, Optional

from .belief import BeliefStore
from .component import Component
from .config import MppConfig
from .dispatcher import Dispatcher
from .publisher import Publisher, now_ms
from .transport import Transport

log = logging.getLogger("Ara.Mpp.Scheduler")


class SchedulerState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler:
    """Single-threaded cooperative loop for one component."""

    def __init__(
        self,
        component: Component,
        sba: int,
        config: Optional[MppConfig] = None,
        clock: Callable[[], float] = now_ms,
        transport: Optional[Transport] = None,
    ):
        self.config = config or MppConfig()
        self.component = component
        self.clock = clock

        listen_bus = component.listen_bus
        if self.config.listen_bus is not None:
            listen_bus = self.config.listen_bus

        period_ms = component.publish_period_ms
        if self.config.publish_period_ms is not None:
            period_ms = self.config.publish_period_ms

        self.transport = transport or Transport(sba, self.config, listen_bus=listen_bus)
        self.sba = self.transport.data_port if self.transport.data_port is not None else sba

        self.beliefs = BeliefStore(component.component_name, emit=self.transport.send_sink)
        self.dispatcher = Dispatcher(component)
        self.publisher = Publisher(period_ms, component.publish_snapshot, clock=clock)

        self._stopped = threading.Event()
        if not self.transport.healthy:
            self._stopped.set()

        self._selector: Optional[selectors.BaseSelector] = None
        self._looping = False
        self._close_requested = False
        self.tick_count = 0

        component.attach(self)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def healthy(self) -> bool:
        return self.transport.healthy

    @property
    def state(self) -> SchedulerState:
        if self._stopped.is_set():
            return SchedulerState.STOPPED
        return SchedulerState.RUNNING

    @property
    def running(self) -> bool:
        return not self._stopped.is_set()

    def stop(self) -> None:
        """Leave the loop after the current tick."""
        self._stopped.set()

    def close(self) -> None:
        """Stop and release the sockets (deferred to loop exit if running)."""
        self.stop()
        self._close_requested = True
        if self._looping:
            return
        self.transport.close()

    # =========================================================================
    # Loop
    # =========================================================================

    def run(self) -> None:
        """Run until stopped."""
        line = "[MPP] running on sba=%d" % self.sba
        if self.transport.bus_socket is not None:
            line += " (listening BUS)"
        log.info(line)

        if not self.running:
            return

        self._selector = self._make_selector()
        self._looping = True
        try:
            while self.running:
                self.tick()
                if self.running:
                    self.wait()
        except Exception:
            log.exception("[MPP] component %s failed", self.component.component_name)
            raise
        finally:
            self._looping = False
            self._selector.close()
            self._selector = None
            if self._close_requested:
                self.transport.close()

        log.info("[MPP] sba=%d stopped after %d ticks", self.sba, self.tick_count)

    def tick(self) -> None:
        """One pass: data socket, bus socket, publisher."""
        self._service(self.transport.data_socket)
        if self.running and self.transport.bus_socket is not None:
            self._service(self.transport.bus_socket)
        if self.running:
            self.publisher.maybe_publish()
        self.tick_count += 1

    def _service(self, sock) -> None:
        inbound = self.transport.poll(sock, on_error=self.dispatcher.parse_error)
        if inbound is not None:
            self.dispatcher.dispatch(inbound.envelope)

    def wait(self) -> None:
        """Block until a socket is readable, the publisher is due, or the idle cap."""
        timeout_ms = self.config.idle_wait_ms
        due_ms = self.publisher.time_until_due_ms()
        if due_ms is not None:
            timeout_ms = min(timeout_ms, due_ms)

        if self._selector is None:
            self._stopped.wait(timeout_ms / 1000.0)
            return

        self._selector.select(timeout_ms / 1000.0)

    def _make_selector(self) -> selectors.BaseSelector:
        selector = selectors.DefaultSelector()
        for sock in (self.transport.data_socket, self.transport.bus_socket):
            if sock is not None:
                selector.register(sock, selectors.EVENT_READ)
        return selector


__all__ = [
    'Scheduler',
    'SchedulerState',
]
