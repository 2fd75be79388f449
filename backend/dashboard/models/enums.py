from __future__ import annotations

import enum


class PostStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class NotificationCategory(str, enum.Enum):
    SYSTEM = "SYSTEM"
    POST = "POST"
    USER = "USER"
    SUBSCRIPTION = "SUBSCRIPTION"
    SECURITY = "SECURITY"
    COMMENT = "COMMENT"


class PlanStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class BillingInterval(str, enum.Enum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class SubscriptionStatus(str, enum.Enum):
    TRIALING = "TRIALING"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"


class EmailStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class BackupStatus(str, enum.Enum):
    PENDING = "PENDING"  # record inserted, export in flight
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
