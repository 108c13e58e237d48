# ara_mpp/components/ledger.py
"""
Belief Ledger Component (BLS)
=============================

Runs on the belief-sink port and records the belief announcements of the
whole fleet, in arrival order.

Admission rules mirror the per-component store:
    - the envelope must validate as a BeliefEnvelope
    - subject must be prefixed "<component>."
    - a (subject, polarity) pair is recorded once

Queries (reply goes to the last sender):
    {"read": true}                      -> snapshot
    {"query": {"subject": "NET.rx_done"}} -> every recorded entry for the
                                           subject, oldest first

No "current value" is derived: a flipped polarity is just another entry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ..belief import Belief, BeliefJournal
from ..component import Component
from ..schemas import BeliefEnvelope, SubjectQuery

log = logging.getLogger("Ara.Mpp.Ledger")


class BeliefLedger(Component):
    """Fleet-wide belief recorder."""

    component_name = "BLS"

    def __init__(self):
        self.journal = BeliefJournal()
        self.rejected = 0
        self.duplicates = 0

    def apply_config(self, envelope: Any) -> None:
        if not isinstance(envelope, dict):
            return

        if envelope.get("read", False):
            self.reply(self.snapshot())

        if "query" in envelope:
            try:
                query = SubjectQuery.model_validate(envelope["query"])
            except ValidationError:
                return
            self.reply({
                "subject": query.subject,
                "beliefs": [b.to_dict() for b in self.journal.find(query.subject)],
            })

    def on_message(self, envelope: Any) -> None:
        if not isinstance(envelope, dict) or "belief" not in envelope:
            return

        try:
            announcement = BeliefEnvelope.model_validate(envelope).belief
        except ValidationError as e:
            self.rejected += 1
            log.debug("Invalid belief envelope: %s", e)
            return

        if not announcement.owned:
            self.rejected += 1
            log.warning(
                "Dropping belief %s: not owned by %s",
                announcement.subject, announcement.component,
            )
            return

        belief = Belief(
            owner=announcement.component,
            subject=announcement.subject,
            polarity=announcement.polarity,
            context=announcement.context,
        )
        if not self.journal.append(belief):
            self.duplicates += 1
            return

        log.info(
            "belief %s=%s from %s",
            belief.subject, belief.polarity, belief.owner,
        )

    def beliefs(self) -> List[Belief]:
        return self.journal.entries()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "component": self.component_name,
            "sba": self.sba,
            "recorded": len(self.journal),
            "rejected": self.rejected,
            "duplicates": self.duplicates,
            "beliefs": [b.to_dict() for b in self.journal.entries()],
        }
