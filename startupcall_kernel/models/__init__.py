"""Kernel ORM models shared by every module: users and notifications."""

from startupcall_kernel.models.notification import NotificationModel
from startupcall_kernel.models.user import UserModel

__all__ = ["NotificationModel", "UserModel"]
