"""
Built-in MPP components.

    RegisterBank - generic register file (default `ara-mpp` component)
    BeliefLedger - fleet-wide belief recorder on the belief-sink port
"""

from .registers import RegisterBank, DEFAULT_REGISTERS
from .ledger import BeliefLedger

__all__ = [
    'RegisterBank',
    'DEFAULT_REGISTERS',
    'BeliefLedger',
]
