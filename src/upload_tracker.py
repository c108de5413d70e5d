"""
upload_tracker.py

Per-field bookkeeping for the extraction uploaders across Streamlit reruns.

A new upload goes through two script runs:
  1. QUEUED: the field is marked busy and the script reruns, so the uploader
     is drawn disabled.
  2. EXTRACT: the extraction runs while the disabled uploader is on screen;
     finish() then records the upload as processed and clears the busy mark.
Later reruns with the same upload are IDLE, so nothing is sent twice.
"""

from typing import Dict, Optional, Set

IDLE = "idle"
QUEUED = "queued"
EXTRACT = "extract"


def upload_identity(uploaded) -> str:
    file_id = getattr(uploaded, "file_id", "")
    return f"{file_id}:{uploaded.name}:{uploaded.size}"


class UploadTracker:

    def __init__(self):
        self.processed: Dict[str, str] = {}
        self.busy: Set[str] = set()

    def is_busy(self, field: str) -> bool:
        return field in self.busy

    def step(self, field: str, identity: Optional[str]) -> str:
        """Decide what this script run should do for one uploader."""
        if identity is None:
            # Upload removed before its extraction ran
            self.busy.discard(field)
            return IDLE
        if field in self.busy:
            return EXTRACT
        if self.processed.get(field) != identity:
            self.busy.add(field)
            return QUEUED
        return IDLE

    def finish(self, field: str, identity: str) -> None:
        self.busy.discard(field)
        self.processed[field] = identity
