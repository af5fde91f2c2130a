"""
Post-processing shared by the "download workbook" and "preview" paths.

Both go through the same deduplicator and row builder; the workbook path can
additionally run a batch text review first.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from bizscan.deduplicator import merge
from bizscan.models import CorrectionEntry, DuplicateEntry, ExtractedRecord
from bizscan.reviewer import TextReviewer
from bizscan.workbook import records_to_rows, render_partial_workbook, render_workbook


@dataclass
class ExportReport:
    records: List[ExtractedRecord]
    original_count: int
    duplicates_removed: List[DuplicateEntry] = field(default_factory=list)
    corrections: List[CorrectionEntry] = field(default_factory=list)
    reviewed: bool = False

    @property
    def final_count(self) -> int:
        return len(self.records)


async def prepare_records(
    records: Sequence[ExtractedRecord],
    reviewer: Optional[TextReviewer] = None,
) -> ExportReport:
    """Optionally batch-review `records`, then deduplicate them."""
    records = list(records)
    corrections: List[CorrectionEntry] = []
    reviewed = records
    if reviewer is not None and records:
        result = await reviewer.review(records)
        if isinstance(result.corrected, list):
            reviewed = result.corrected
        corrections = result.corrections

    merged = merge(reviewed, [])
    logger.info(
        f"📦 Prepared {len(records)} records → {len(merged.merged)} after deduplication "
        f"({len(corrections)} text corrections)"
    )
    return ExportReport(
        records=merged.merged,
        original_count=len(records),
        duplicates_removed=merged.duplicates_removed,
        corrections=corrections,
        reviewed=reviewer is not None,
    )


async def _prepare_or_fallback(
    records: Sequence[ExtractedRecord],
    reviewer: Optional[TextReviewer],
) -> ExportReport:
    try:
        return await prepare_records(records, reviewer=reviewer)
    except Exception as e:
        logger.warning(f"⚠️ Review failed, building workbook from original data: {e}")
        merged = merge(list(records), [])
        return ExportReport(
            records=merged.merged,
            original_count=len(records),
            duplicates_removed=merged.duplicates_removed,
        )


async def export_workbook(
    records: Sequence[ExtractedRecord],
    reviewer: Optional[TextReviewer] = None,
) -> Tuple[bytes, ExportReport]:
    """
    Review, deduplicate and render `records` as a workbook.

    If review or deduplication blows up, the original records are deduplicated
    and rendered instead so the caller still gets a file.
    """
    report = await _prepare_or_fallback(records, reviewer)
    return render_workbook(report.records), report


async def export_partial_workbook(
    records: Sequence[ExtractedRecord],
    total: int,
    failed: int,
    reviewer: Optional[TextReviewer] = None,
) -> Tuple[bytes, ExportReport]:
    """Same as export_workbook, for a paused or partly failed batch (adds the summary block)."""
    report = await _prepare_or_fallback(records, reviewer)
    payload = render_partial_workbook(
        report.records, total=total, succeeded=len(records), failed=failed
    )
    return payload, report


def preview_rows(records: Sequence[ExtractedRecord]) -> List[Dict[str, Any]]:
    """Rows exactly as they would appear in the workbook, without review."""
    return records_to_rows(merge(list(records), []).merged)
