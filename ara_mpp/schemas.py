"""
Pydantic models for MPP wire envelopes
"""

from pydantic import BaseModel, ConfigDict, Field, StrictBool
from typing import Any


class BeliefPayload(BaseModel):
    """Body of a belief announcement."""
    model_config = ConfigDict(extra="ignore")

    component: str = Field(..., min_length=1, description="Owning component identity")
    subject: str = Field(..., min_length=1, description="Owner-prefixed subject, e.g. NET.rx_done")
    polarity: StrictBool
    context: Any = Field(default_factory=dict, description="Opaque context")

    @property
    def owned(self) -> bool:
        """Subject sits in the announcing component's namespace."""
        return self.subject.startswith(self.component + ".")


class BeliefEnvelope(BaseModel):
    """{"belief": {...}} as emitted to the belief sink."""
    belief: BeliefPayload


class SubjectQuery(BaseModel):
    """{"query": {"subject": ...}} sent to the belief ledger."""
    subject: str = Field(..., min_length=1)
