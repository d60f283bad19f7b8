from app.models.user import User
from app.models.catalog import (
    SchoolClass,
    Semester,
    Subject,
    Content,
    Project,
    FileKind,
    ContentType,
    Difficulty,
)
from app.models.entitlement import ContentEntitlement, ProjectEntitlement
from app.models.order import Order, OrderStatus
from app.models.file_deletion import PendingFileDeletion

__all__ = [
    "User",
    "SchoolClass",
    "Semester",
    "Subject",
    "Content",
    "Project",
    "FileKind",
    "ContentType",
    "Difficulty",
    "ContentEntitlement",
    "ProjectEntitlement",
    "Order",
    "OrderStatus",
    "PendingFileDeletion",
]
