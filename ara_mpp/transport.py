# ara_mpp/transport.py
"""
UDP Transport
=============

Owns the component's sockets:

    data socket - bound to the component's own port (its identity)
    bus socket  - optional, bound to the shared fleet bus port

Both are non-blocking and bound to any address; outbound traffic goes to
the configured host (loopback by convention) and always leaves from the
data socket.

Receive contract:
    - one recvfrom attempt per poll(); never waits
    - datagrams longer than config.max_datagram are truncated to it
    - the sender of every datagram on the data socket becomes the reply
      target, even if the payload turns out to be malformed
    - malformed payloads are dropped without logging

A bind failure does not raise: the transport is simply not healthy.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from .codec import (
    EnvelopeDecodeError,
    EnvelopeEncodeError,
    decode_envelope,
    encode_envelope,
)
from .config import MppConfig

log = logging.getLogger("Ara.Mpp.Transport")

Address = Tuple[str, int]


class BindError(OSError):
    """A requested socket could not be bound."""


@dataclass
class Inbound:
    """One decoded datagram."""
    envelope: Any
    sender: Address
    truncated: bool = False


class Transport:
    """Non-blocking UDP endpoints for one component."""

    def __init__(
        self,
        data_port: int,
        config: Optional[MppConfig] = None,
        listen_bus: bool = False,
    ):
        self.config = config or MppConfig()
        self.listen_bus = listen_bus

        self.data_socket: Optional[socket.socket] = None
        self.bus_socket: Optional[socket.socket] = None
        self.healthy = True

        # Reply-to slot, overwritten by every receive on the data socket
        self.last_sender: Optional[Address] = None

        # Reused across receives
        self._buffer = bytearray(self.config.max_datagram)

        self.open(data_port, self.config.bus_port if listen_bus else None)

    # =========================================================================
    # Setup / teardown
    # =========================================================================

    def open(self, data_port: int, bus_port: Optional[int] = None) -> bool:
        """
        Bind the data socket and, if requested, the bus socket.

        Any sockets from a previous open() are closed first. On failure
        nothing stays bound.
        """
        self.close()
        self.healthy = True

        try:
            self.data_socket = self._make_socket(data_port)
        except BindError as e:
            log.error("[MPP] failed to bind sba=%d: %s", data_port, e)
            self.healthy = False
            return False

        if bus_port is not None:
            try:
                self.bus_socket = self._make_socket(bus_port)
            except BindError as e:
                log.error("[MPP] failed to bind BUS port %d: %s", bus_port, e)
                self.close()
                self.healthy = False
                return False

        return True

    def _make_socket(self, port: int) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind((self.config.bind_host, port))
        except OSError as e:
            sock.close()
            raise BindError(e.errno, e.strerror or str(e)) from e
        return sock

    def close(self) -> None:
        for sock in (self.data_socket, self.bus_socket):
            if sock is not None:
                sock.close()
        self.data_socket = None
        self.bus_socket = None

    @property
    def data_port(self) -> Optional[int]:
        """Actual bound data port (resolves port 0)."""
        if self.data_socket is None:
            return None
        return self.data_socket.getsockname()[1]

    @property
    def has_sender(self) -> bool:
        return self.last_sender is not None

    # =========================================================================
    # Send
    # =========================================================================

    def send(self, envelope: Any, port: int) -> bool:
        """Best-effort send to (config.host, port). True if fully accepted."""
        return self._send_to(envelope, (self.config.host, port))

    def send_bus(self, envelope: Any) -> bool:
        return self.send(envelope, self.config.bus_port)

    def send_sink(self, envelope: Any) -> bool:
        return self.send(envelope, self.config.sink_port)

    def reply(self, envelope: Any) -> bool:
        """Send to whoever last wrote to the data socket."""
        if self.last_sender is None:
            return False
        return self._send_to(envelope, self.last_sender)

    def _send_to(self, envelope: Any, address: Address) -> bool:
        if self.data_socket is None:
            return False

        try:
            payload = encode_envelope(envelope)
        except EnvelopeEncodeError as e:
            log.debug("[MPP] unencodable envelope to %s: %s", address, e)
            return False

        try:
            sent = self.data_socket.sendto(payload, address)
        except OSError:
            return False
        return sent == len(payload)

    # =========================================================================
    # Receive
    # =========================================================================

    def poll(
        self,
        sock: Optional[socket.socket],
        on_error: Optional[Callable[[EnvelopeDecodeError], None]] = None,
    ) -> Optional[Inbound]:
        """
        One non-blocking receive attempt on `sock`.

        Returns None if nothing is queued or the payload is malformed; in
        the latter case `on_error` (if given) receives the decode error.
        """
        if sock is None:
            return None

        size = len(self._buffer)
        try:
            nbytes, sender = sock.recvfrom_into(self._buffer, size)
        except OSError:
            return None

        if nbytes <= 0:
            return None

        if sock is self.data_socket:
            self.last_sender = sender

        payload = bytes(self._buffer[:nbytes])
        try:
            envelope = decode_envelope(payload)
        except EnvelopeDecodeError as e:
            if on_error is not None:
                on_error(e)
            return None

        return Inbound(envelope=envelope, sender=sender, truncated=nbytes >= size)


__all__ = [
    'Address',
    'BindError',
    'Inbound',
    'Transport',
]
