from campus_ops.db.base import Base, TimestampMixin

__all__ = ["Base", "TimestampMixin"]
