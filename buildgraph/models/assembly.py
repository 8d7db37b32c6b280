"""assemblies table."""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from buildgraph.core.database import Base, CreatedAtMixin


class Assembly(CreatedAtMixin, Base):
    __tablename__ = "assemblies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Producing project for build outputs. NO ACTION: the scan cascade
    # already removes both sides, a second cascade path would be redundant.
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="NO ACTION", deferrable=True, initially="DEFERRED"),
    )
    unique_identifier: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("scan_id", "file_path", name="uq_assemblies_scan_file_path"),
        Index("idx_assemblies_scan", "scan_id"),
        Index("idx_assemblies_project", "project_id"),
        Index("idx_assemblies_name", "name"),
    )
