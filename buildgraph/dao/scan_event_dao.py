"""ScanEventDAO — scan_events table operations."""

from buildgraph.dao.base import ScanScopedDAO
from buildgraph.models.scan_event import ScanEvent


class ScanEventDAO(ScanScopedDAO[ScanEvent]):
    model = ScanEvent
    order_by = "sequence"
