"""
Allocation Module

Objects:
- Assignment (one engineer's commitment to one project)
- AllocationLedger (authoritative per-engineer commitments)
- AssignmentValidator (the only way in)

Invariants:
- sum(allocation_percentage) <= max_capacity for every engineer, always
- allocation_percentage in [1, 100]
- start_date <= end_date
"""

from .ledger import AllocationLedger, Assignment
from .validator import AssignmentValidator

__all__ = ["AllocationLedger", "Assignment", "AssignmentValidator"]
