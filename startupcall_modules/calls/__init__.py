"""
Call Lifecycle Module (``startupcall_modules.calls``).

Startup calls move DRAFT -> PUBLISHED -> CLOSED -> ARCHIVED under admin
control.  ``CallService`` owns the writes; non-admins only ever see
published or closed calls.
"""

from startupcall_modules.calls.models import (
    NOT_APPLIED,
    VISIBLE_TO_NON_ADMINS,
    CallDraft,
    CallPatch,
    CallStatus,
    StartupCall,
)
from startupcall_modules.calls.workflows import STARTUP_CALL_WORKFLOW

__all__ = [
    "NOT_APPLIED",
    "VISIBLE_TO_NON_ADMINS",
    "CallDraft",
    "CallPatch",
    "CallStatus",
    "StartupCall",
    "STARTUP_CALL_WORKFLOW",
]
