"""scans table."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Text, Uuid, desc, func
from sqlalchemy.orm import Mapped, mapped_column

from buildgraph.core.database import Base, CreatedAtMixin


class Scan(CreatedAtMixin, Base):
    """Root of one repository snapshot; every other row hangs off a scan."""

    __tablename__ = "scans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    repository_path: Mapped[str] = mapped_column(Text, nullable=False)
    vcs_revision: Mapped[str] = mapped_column(Text, nullable=False)
    scan_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_scans_cursor", desc("created_at"), desc("id")),
        Index("idx_scans_scan_date", "scan_date"),
        Index("idx_scans_vcs_revision", "vcs_revision"),
    )
