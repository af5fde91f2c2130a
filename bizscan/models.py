"""
Typed data models for the certificate scanning pipeline.
All data structures used throughout the codebase should be defined here.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from bizscan.config import UNCONFIRMED


class Verdict(str, Enum):
    """Onboarding status reported by a single delivery platform."""
    AVAILABLE = "available"    # explicitly not onboarded, may apply
    REGISTERED = "registered"  # explicitly onboarded already
    UNKNOWN = "unknown"        # anything else


@dataclass(frozen=True)
class PlatformStatus:
    """One verdict per delivery platform for a single check."""
    ddangyo: Verdict = Verdict.UNKNOWN
    yogiyo: Verdict = Verdict.UNKNOWN
    coupangeats: Verdict = Verdict.UNKNOWN

    @classmethod
    def unknown(cls) -> "PlatformStatus":
        return cls()

    def as_dict(self) -> dict:
        return {
            "ddangyo": self.ddangyo.value,
            "yogiyo": self.yogiyo.value,
            "coupangeats": self.coupangeats.value,
        }


@dataclass
class ExtractedRecord:
    """One business as read from a single certificate image."""
    company_name: str = ""
    address: str = ""
    registration_number: str = ""  # "NNN-NN-NNNNN" or ""
    representative_name: Optional[str] = None
    phone_number: str = UNCONFIRMED
    open_hours: str = UNCONFIRMED
    memo: str = ""
    availability_summary: str = ""
    availability: Optional[PlatformStatus] = None
    source_file: str = ""


class Phase(str, Enum):
    QUEUED = "queued"
    COMPRESSING = "compressing"
    EXTRACTING = "extracting"
    CHECKING = "checking"
    REVIEWING = "reviewing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class BatchItem:
    """A source file moving through the pipeline. Mutated only by the orchestrator."""
    file_name: str
    content: bytes = field(repr=False, default=b"")
    phase: Phase = Phase.QUEUED
    retry_count: int = 0
    last_error: Optional[str] = None


@dataclass
class CorrectionEntry:
    """A single text correction proposed by the reviewer."""
    field: str
    original: str
    corrected: str
    reason: str = ""
    index: Optional[int] = None  # position in a batch review


@dataclass
class ReviewResult:
    corrected: Union[ExtractedRecord, List[ExtractedRecord]]
    corrections: List[CorrectionEntry] = field(default_factory=list)


@dataclass
class DuplicateEntry:
    company_name: str
    registration_number: str


@dataclass
class MergeResult:
    merged: List[ExtractedRecord]
    duplicates_removed: List[DuplicateEntry] = field(default_factory=list)


@dataclass
class DiscardedItem:
    """A file whose business was dropped on purpose (e.g. onboarded everywhere)."""
    file_name: str
    reason: str


@dataclass
class ContactInfo:
    phone_number: str = UNCONFIRMED
    open_hours: str = UNCONFIRMED


@dataclass
class BatchSnapshot:
    """Read-only view of the orchestrator's progress, safe to hand to readers."""
    state: str
    results: List[ExtractedRecord]
    failed: List[BatchItem]
    discarded: List[DiscardedItem]
    total: int
    processed: int
    progress: float
    corrections: List[CorrectionEntry] = field(default_factory=list)

    @property
    def discarded_count(self) -> int:
        return len(self.discarded)
