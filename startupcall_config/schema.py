"""
Configuration schema (``startupcall_config.schema``).

Frozen dataclasses describing a loaded platform configuration.  Each
section validates its own values in ``__post_init__`` so that an invalid
configuration can never be constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    sqlite_busy_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow must not be negative")
        if self.sqlite_busy_timeout <= 0:
            raise ValueError("database.sqlite_busy_timeout must be positive")


@dataclass(frozen=True)
class ReviewConfig:
    default_due_days: int = 7
    reviews_per_application: int = 3
    min_score: int = 0
    max_score: int = 100

    def __post_init__(self) -> None:
        if self.default_due_days < 1:
            raise ValueError("review.default_due_days must be at least 1")
        if self.reviews_per_application < 1:
            raise ValueError("review.reviews_per_application must be at least 1")
        if self.min_score >= self.max_score:
            raise ValueError("review.min_score must be below review.max_score")


@dataclass(frozen=True)
class SponsorshipConfig:
    default_currency: str = "USD"
    open_status_aliases: tuple[str, ...] = ("active",)

    def __post_init__(self) -> None:
        if len(self.default_currency) != 3:
            raise ValueError("sponsorship.default_currency must be a 3-letter code")


@dataclass(frozen=True)
class BudgetConfig:
    default_currency: str = "USD"
    admin_expenses_auto_approved: bool = True

    def __post_init__(self) -> None:
        if len(self.default_currency) != 3:
            raise ValueError("budget.default_currency must be a 3-letter code")


@dataclass(frozen=True)
class NotificationConfig:
    email_enabled: bool = True
    sender: str = "noreply@startupcall.local"

    def __post_init__(self) -> None:
        if "@" not in self.sender:
            raise ValueError("notifications.sender must be an email address")


@dataclass(frozen=True)
class ApiConfig:
    expose_error_details: bool = False
    default_page_size: int = 10
    max_page_size: int = 100

    def __post_init__(self) -> None:
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("api.default_page_size must be between 1 and api.max_page_size")


@dataclass(frozen=True)
class PlatformConfig:
    name: str = "startupcall"
    environment: str = "development"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    sponsorship: SponsorshipConfig = field(default_factory=SponsorshipConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    checksum: str = ""

    @classmethod
    def with_defaults(cls) -> "PlatformConfig":
        return cls()
