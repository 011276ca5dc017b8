"""
vestvault core components:
- Exception hierarchy and configuration
- Execution environment (clock, atomic transactions)
- Collaborator interfaces and reference contracts
- Release-schedule engine and instance factory
"""

__all__ = []
