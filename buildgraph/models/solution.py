"""solutions table."""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from buildgraph.core.database import Base, CreatedAtMixin


class Solution(CreatedAtMixin, Base):
    __tablename__ = "solutions"

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
    is_single_project: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )

    __table_args__ = (
        UniqueConstraint("scan_id", "unique_identifier", name="uq_solutions_scan_identifier"),
        Index("idx_solutions_scan", "scan_id"),
        Index("idx_solutions_file_path", "file_path"),
    )
