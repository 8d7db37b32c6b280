"""projects table."""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from buildgraph.core.database import Base, CreatedAtMixin


class Project(CreatedAtMixin, Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
    )
    unique_identifier: Mapped[str] = mapped_column(Text, nullable=False)
    native_guid: Mapped[Optional[str]] = mapped_column(Text)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    guid_method: Mapped[str] = mapped_column(Text, nullable=False)
    target_framework: Mapped[str] = mapped_column(Text, nullable=False)
    project_style: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("scan_id", "unique_identifier", name="uq_projects_scan_identifier"),
        Index("idx_projects_scan", "scan_id"),
        Index("idx_projects_file_path", "file_path"),
        Index("idx_projects_name", "name"),
    )
