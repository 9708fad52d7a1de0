"""startupcall_api -- REST surface over the workflow services."""

from startupcall_api.app import create_app

__all__ = ["create_app"]
