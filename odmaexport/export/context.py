"""
Mutable state of one export run.

One ExportContext is created by the driver and handed by reference to the
dumper and the value encoder. Nothing in here is shared between runs.
"""

import time
from typing import Dict, Optional, Set

import psutil

from ..api import QName


class ExportStatistics:
    """Statistics tracking for an export run."""

    def __init__(self):
        self.start_time = time.time()
        self.end_time: Optional[float] = None
        self.objects_exported = 0
        self.inline_objects = 0
        self.classes_exported = 0
        self.property_infos_exported = 0
        self.duplicates_skipped = 0
        self.property_errors = 0
        self.object_errors = 0
        self.objects_not_found = 0
        self.fetch_errors = 0
        self.content_files = 0
        self.references_queued = 0
        self.peak_memory_mb = 0.0

    @property
    def duration(self) -> float:
        """Get duration in seconds."""
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def errors_encountered(self) -> int:
        return (
            self.property_errors
            + self.object_errors
            + self.objects_not_found
            + self.fetch_errors
        )

    def sample_memory(self):
        try:
            rss_mb = psutil.Process().memory_info().rss / (1024 * 1024)
        except psutil.Error:
            return
        self.peak_memory_mb = max(self.peak_memory_mb, rss_mb)

    def finish(self):
        self.sample_memory()
        self.end_time = time.time()


class ExportContext:
    """
    Exported set, pending queue and content counter of a run.

    ``pending`` is insertion ordered: id -> qualified class name.
    """

    def __init__(self):
        self.exported: Set[str] = set()
        self.pending: Dict[str, QName] = {}
        self.statistics = ExportStatistics()
        self._content_counter = 0

    def is_exported(self, object_id: str) -> bool:
        return object_id in self.exported

    def mark_exported(self, object_id: str):
        self.exported.add(object_id)
        self.statistics.objects_exported += 1

    def enqueue(self, object_id: str, class_qname: QName) -> bool:
        """Queue a retrievable object unless it already has a queue position."""
        if object_id in self.pending:
            return False
        self.pending[object_id] = class_qname
        self.statistics.references_queued += 1
        return True

    def dequeue(self, object_id: str):
        self.pending.pop(object_id, None)

    def pop_pending(self):
        """Remove and return the oldest pending (id, class qname) entry."""
        object_id = next(iter(self.pending))
        return object_id, self.pending.pop(object_id)

    def next_content_number(self) -> int:
        self._content_counter += 1
        return self._content_counter
