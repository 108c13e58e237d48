# ara_mpp/dispatcher.py
"""
Inbound dispatch: every decoded envelope goes to apply_config() and then
on_message(), both always, in that order.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from .codec import EnvelopeDecodeError

if TYPE_CHECKING:
    from .component import Component


class Dispatcher:
    """Routes envelopes into a component's hooks."""

    def __init__(self, component: "Component"):
        self.component = component
        self.dispatched = 0

    def dispatch(self, envelope: Any) -> None:
        self.component.apply_config(envelope)
        self.component.on_message(envelope)
        self.dispatched += 1

    def parse_error(self, error: EnvelopeDecodeError) -> None:
        self.component.on_parse_error(error)
