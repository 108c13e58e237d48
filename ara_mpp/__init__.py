# ara_mpp/__init__.py
"""
Ara MPP - UDP Component Runtime with Owned Beliefs
==================================================

Independently addressable components exchanging JSON envelopes over
loopback UDP, each with an append-only store of the facts it asserts.

Components:
- transport: non-blocking data/bus sockets, reply-to-last-sender
- dispatcher: apply_config() then on_message() for every envelope
- belief: ownership + no-duplicate commit rules, sink announcements
- publisher: periodic snapshot timer (no catch-up)
- scheduler: the cooperative run loop tying it all together

Ports:
    <sba>  private data port (component identity)
    3999   shared bus
    4000   belief sink

Usage:
    from ara_mpp import Component, Scheduler

    class Probe(Component):
        component_name = "PRB"

        def apply_config(self, envelope):
            if envelope.get("fire"):
                self.commit("PRB.fired", True, {"n": 1})

        def on_message(self, envelope):
            pass

        def snapshot(self):
            return {"component": "PRB"}

    Scheduler(Probe(), sba=4010).run()
"""

from .config import (
    BUS_PORT,
    BLS_PORT,
    MAX_DATAGRAM,
    ConfigError,
    MppConfig,
    load_config,
)

from .codec import (
    EnvelopeDecodeError,
    EnvelopeEncodeError,
    encode_envelope,
    decode_envelope,
)

from .belief import (
    Belief,
    BeliefJournal,
    BeliefStore,
    CommitOutcome,
    owns_subject,
)

from .transport import (
    BindError,
    Inbound,
    Transport,
)

from .publisher import Publisher
from .dispatcher import Dispatcher
from .component import Component, ComponentNotAttached
from .scheduler import Scheduler, SchedulerState

__version__ = "0.1.0"

__all__ = [
    # Config
    'BUS_PORT',
    'BLS_PORT',
    'MAX_DATAGRAM',
    'ConfigError',
    'MppConfig',
    'load_config',
    # Codec
    'EnvelopeDecodeError',
    'EnvelopeEncodeError',
    'encode_envelope',
    'decode_envelope',
    # Beliefs
    'Belief',
    'BeliefJournal',
    'BeliefStore',
    'CommitOutcome',
    'owns_subject',
    # Transport
    'BindError',
    'Inbound',
    'Transport',
    # Runtime
    'Publisher',
    'Dispatcher',
    'Component',
    'ComponentNotAttached',
    'Scheduler',
    'SchedulerState',
]
