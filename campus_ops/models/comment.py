"""
Comment on a ticket. Authorship is fixed at creation.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey

from campus_ops.db.base import Base, TimestampMixin


class Comment(Base, TimestampMixin):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(
        Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    author_name = Column(String(150), nullable=True)
    author_role = Column(String(20), nullable=True)
    edited = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, ticket={self.ticket_id}, author={self.author_id})>"
