"""
Shared Kernel Module
====================

Shared infrastructure used across bounded contexts.

Architecture Pattern: Modular Monolith
- Each module (triage) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add triage business logic to the shared kernel.
"""

__version__ = "1.2.0"
