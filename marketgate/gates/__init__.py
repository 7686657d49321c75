"""
Account-level and instance-level authorization gates.
"""

from marketgate.gates.account import AccountGate, Requirement
from marketgate.gates.ownership import OwnershipGuard

__all__ = [
    "AccountGate",
    "Requirement",
    "OwnershipGuard",
]
