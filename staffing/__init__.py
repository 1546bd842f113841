"""
Staffing capacity engine.

Tracks how much of each engineer's capacity is committed to projects and
refuses any assignment that would over-allocate them.

Layers:
- capacity_truth: pure capacity and timeline derivations
- allocation: the ledger of commitments and the validator guarding it
- entities / queries: engineers, projects and the dashboard read models
"""

__version__ = "1.0.0"
