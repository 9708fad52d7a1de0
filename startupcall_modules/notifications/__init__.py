"""
Notifications Module (``startupcall_modules.notifications``).

User-facing reads and the read flag for stored notifications, plus the
admin broadcast.  Delivery itself lives in
``startupcall_kernel.services.notification_dispatcher``.
"""

from startupcall_kernel.domain.notification import (
    NotificationPage,
    NotificationRecord,
    NotificationType,
)

__all__ = ["NotificationPage", "NotificationRecord", "NotificationType"]
