"""packages table."""

import uuid

from sqlalchemy import ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from buildgraph.core.database import Base, CreatedAtMixin


class Package(CreatedAtMixin, Base):
    __tablename__ = "packages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    scan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("scan_id", "name", "version", name="uq_packages_scan_name_version"),
        Index("idx_packages_scan", "scan_id"),
        Index("idx_packages_name", "name"),
    )
