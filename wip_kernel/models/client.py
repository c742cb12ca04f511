"""
Module: wip_kernel.models.client
Responsibility: ORM persistence for clients and their tasks (engagements).
    Both are owned by the wider practice-management application; the engine
    only reads them to resolve a scope before scanning transactions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - external_id is the cross-system identifier (GUID issued by the
      practice-management source) and is unique per table.
    - A task references its client by the client's external_id.
"""

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wip_kernel.db.base import TimestampedBase


class ClientModel(TimestampedBase):
    """A billable client."""

    __tablename__ = "clients"

    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    client_code: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    tasks: Mapped[list["TaskModel"]] = relationship(back_populates="client")

    def __repr__(self) -> str:
        return f"<ClientModel {self.client_code}: {self.name}>"


class TaskModel(TimestampedBase):
    """A task (engagement) performed for a client."""

    __tablename__ = "tasks"

    __table_args__ = (
        Index("idx_task_client_external_id", "client_external_id"),
    )

    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    client_external_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("clients.external_id"),
        nullable=False,
    )
    task_code: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_line_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    client: Mapped[ClientModel] = relationship(back_populates="tasks")

    def __repr__(self) -> str:
        return f"<TaskModel {self.task_code} client={self.client_external_id}>"
