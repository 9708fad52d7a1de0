"""Kernel services: notification outbox, dispatcher, and unit of work."""
