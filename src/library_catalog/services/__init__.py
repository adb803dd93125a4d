"""Loan lifecycle services: ledger, member gate, loan state machine, overdue sweeper."""

from .ledger import CopyCountLedger
from .loans import LoanService
from .member_gate import MemberGate
from .overdue import OverdueSweeper

__all__ = ["CopyCountLedger", "LoanService", "MemberGate", "OverdueSweeper"]
