"""User ORM model for circle members and treasurers."""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from treasury.models import Base, BaseModel


class User(Base, BaseModel):
    """Circle member.

    Users are managed by the identity service; the engine only references them
    as submitters, recipients, reviewers and executors of financial records.
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name",
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Login e-mail",
    )

    __table_args__ = (Index("idx_user_full_name", "full_name"),)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, full_name={self.full_name!r})>"


__all__ = ["User"]
