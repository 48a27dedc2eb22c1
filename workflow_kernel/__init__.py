"""
Workflow Kernel

A declarative state-machine engine for entity workflows:
- States and transitions declared once per workflow (blueprints)
- Typed guard outcomes (open, recoverable, fatal)
- Progressive transitions that commit after enough contributions
- Consistency protection for the workflow attribute
- Audit trail of every committed transition
"""

__version__ = "0.1.0"
