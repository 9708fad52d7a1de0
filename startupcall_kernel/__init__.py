"""
Startup Call Kernel

Shared core for the startup call platform workflows:
- Typed error taxonomy
- Structured JSON logging
- Persistence base (UUID keys, Decimal money, UTC timestamps)
- Workflow value objects and explicit actor context
- Post-commit notification outbox and dispatcher
"""

__version__ = "0.1.0"
