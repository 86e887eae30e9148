"""
Workbench Kernel

Shared infrastructure for the entry approval workbench:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- Workflow value types and service outcomes
- Database base classes, engine management and the audit hash chain
"""

__version__ = "0.1.0"
