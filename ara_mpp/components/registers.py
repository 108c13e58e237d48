# ara_mpp/components/registers.py
"""
Register Bank Component
=======================

A generic register file driven entirely by JSON envelopes. It is the
default component behind the `ara-mpp` entry point and a reference for
writing new components.

Envelope protocol (all keys optional, unknown keys ignored):
    {"<register>": value, ...}   - write known registers
    {"read": true}               - reply with the full snapshot

Beliefs:
    <NAME>.configured (true)     - first time any register changes;
                                   context lists the changed registers

Snapshot:
    {"component": "REG", "sba": 4010, "messages": 3, "last_error": "",
     ...registers}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..codec import EnvelopeDecodeError
from ..component import Component

log = logging.getLogger("Ara.Mpp.Registers")

DEFAULT_REGISTERS: Dict[str, Any] = {
    "label": "",
    "enabled": False,
    "level": 0,
}


class RegisterBank(Component):
    """Named registers with read-back and a one-shot 'configured' belief."""

    component_name = "REG"
    listen_bus = True

    def __init__(
        self,
        registers: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        publish_period_ms: Optional[int] = None,
    ):
        if name is not None:
            self.component_name = name
        if publish_period_ms is not None:
            self.publish_period_ms = publish_period_ms

        self.registers: Dict[str, Any] = dict(
            DEFAULT_REGISTERS if registers is None else registers
        )
        self.messages = 0
        self.last_error = ""

    def apply_config(self, envelope: Any) -> None:
        if not isinstance(envelope, dict):
            return

        changed = []
        for key in self.registers:
            if key in envelope and envelope[key] != self.registers[key]:
                self.registers[key] = envelope[key]
                changed.append(key)

        if changed:
            log.debug("%s registers updated: %s", self.component_name, changed)
            self.commit(
                f"{self.component_name}.configured",
                True,
                {"registers": changed},
            )

        if envelope.get("read", False):
            self.reply(self.snapshot())

    def on_message(self, envelope: Any) -> None:
        self.messages += 1

    def on_parse_error(self, error: EnvelopeDecodeError) -> None:
        self.last_error = str(error)

    def snapshot(self) -> Dict[str, Any]:
        state = {
            "component": self.component_name,
            "sba": self.sba,
            "messages": self.messages,
            "last_error": self.last_error,
        }
        state.update(self.registers)
        return state
