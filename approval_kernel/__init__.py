"""
Approval Kernel

Routing, authorization and state-transition engine for multi-stage
procurement proposal approvals:
- Organization-matrix-driven approval chains
- Structured role matching with department/jobsite scope
- Append-only decision ledger with a single open step
- Administrator override that never bypasses terminal states
"""

__version__ = "0.1.0"
