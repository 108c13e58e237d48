# ara_mpp/belief.py
"""
Belief Store - Owned, Monotonic Facts
=====================================

A belief is a (subject, polarity) fact asserted by exactly one component.
The store is an append-only journal with two admission rules:

    Ownership:    subject must start with "<owner>."
    Monotonicity: a (subject, polarity) pair is committed at most once

Rejected commits change nothing and emit nothing. Accepted commits are
appended and announced to the belief sink:

    {"belief": {"component": "NET", "subject": "NET.rx_done",
                "polarity": true, "context": {"rx_len": 64}}}

A polarity flip (same subject, opposite polarity) is a new entry, not an
update. The journal has no notion of a subject's "current" value.

Usage:
    store = BeliefStore("NET", emit=lambda env: transport.send(env, 4000))
    store.commit("NET.rx_done", True, {"rx_len": 64})
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import logging

from .codec import EnvelopeEncodeError, encode_envelope

log =logging.getLogger("Ara.Mpp.Belief")


class CommitOutcome(str, Enum):
    """Result of a commit attempt."""
    ACCEPTED = "accepted"
    REJECTED_OWNER = "rejected_owner"
    REJECTED_DUPLICATE = "rejected_duplicate"
    REJECTED_INVALID = "rejected_invalid"

    @property
    def accepted(self) -> bool:
        return self is CommitOutcome.ACCEPTED


@dataclass(frozen=True)
class Belief:
    """A committed fact. Never mutated after creation."""
    owner: str
    subject: str
    polarity: bool
    context: Any = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, bool]:
        return (self.subject, self.polarity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.owner,
            "subject": self.subject,
            "polarity": self.polarity,
            "context": self.context,
        }

    def to_envelope(self) -> Dict[str, Any]:
        return {"belief": self.to_dict()}


def owns_subject(owner: str, subject: str) -> bool:
    """True if `subject` lives in `owner`'s namespace."""
    return subject.startswith(owner + ".")


class BeliefJournal:
    """
    Ordered, append-only list of beliefs with a (subject, polarity) index.

    Thread-safe: every read and append holds the journal lock.
    """

    def __init__(self):
        self._entries: List[Belief] = []
        self._keys: set = set()
        self._lock = threading.Lock()

    def append(self, belief: Belief) -> bool:
        """Append unless the (subject, polarity) pair is already present."""
        with self._lock:
            if belief.key in self._keys:
                return False
            self._entries.append(belief)
            self._keys.add(belief.key)
            return True

    def contains(self, subject: str, polarity: bool) -> bool:
        with self._lock:
            return (subject, polarity) in self._keys

    def entries(self) -> List[Belief]:
        """Snapshot of all entries in commit order."""
        with self._lock:
            return list(self._entries)

    def find(self, subject: str) -> List[Belief]:
        """All entries for `subject`, in commit order."""
        with self._lock:
            return [b for b in self._entries if b.subject == subject]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[Belief]:
        return iter(self.entries())


class BeliefStore:
    """
    A component's own beliefs.

    Args:
        owner: component identity; every subject must be prefixed "<owner>."
        emit: called with the belief envelope after each accepted commit;
              its return value (send success) is not inspected
    """

    def __init__(
        self,
        owner: str,
        emit: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ):
        self.owner = owner
        self.emit = emit
        self.journal = BeliefJournal()
        # Serializes check-append-emit so announcements follow journal order
        self._commit_lock = threading.Lock()

    def commit(
        self,
        subject: str,
        polarity: bool,
        context: Any = None,
    ) -> CommitOutcome:
        """
        Assert a fact.

        Rejections are silent towards the network: no state change and no
        envelope. The outcome tells the caller which rule applied.

        A polarity that is not a bool, or a context that cannot be encoded
        as a JSON envelope, is rejected as REJECTED_INVALID.
        """
        if not isinstance(subject, str) or not owns_subject(self.owner, subject):
            return CommitOutcome.REJECTED_OWNER

        if not isinstance(polarity, bool):
            log.warning("Rejected %s: polarity must be a bool, got %r", subject, polarity)
            return CommitOutcome.REJECTED_INVALID

        context = {} if context is None else context
        try:
            encode_envelope(Belief(self.owner, subject, polarity, context).to_envelope())
        except EnvelopeEncodeError as e:
            log.warning("Rejected %s: %s", subject, e)
            return CommitOutcome.REJECTED_INVALID

        belief = Belief(
            owner=self.owner,
            subject=subject,
            polarity=polarity,
            context=copy.deepcopy(context),
        )

        with self._commit_lock:
            if not self.journal.append(belief):
                return CommitOutcome.REJECTED_DUPLICATE

            if self.emit is not None:
                self.emit(belief.to_envelope())

        log.debug("Committed %s=%s", subject, belief.polarity)
        return CommitOutcome.ACCEPTED

    def __len__(self) -> int:
        return len(self.journal)


__all__ = [
    'CommitOutcome',
    'Belief',
    'BeliefJournal',
    'BeliefStore',
    'owns_subject',
]
