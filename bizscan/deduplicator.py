from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from bizscan.models import DuplicateEntry, ExtractedRecord, MergeResult
from bizscan.normalizer import digits_only, is_canonical, normalize_registration_number

MEMO_SEPARATOR = "; "

DedupKey = Tuple[str, str]


def dedup_key(record: ExtractedRecord) -> Optional[DedupKey]:
    """
    Registration number digits when usable, otherwise the company name.

    Returns None for a record with neither; such records are never duplicates.
    """
    normalized = normalize_registration_number(record.registration_number or "")
    if is_canonical(normalized):
        return ("brn", digits_only(normalized))
    name = (record.company_name or "").strip()
    if name:
        return ("name", name)
    return None


def merge_memos(first: str, second: str) -> str:
    first = (first or "").strip()
    second = (second or "").strip()
    if not first:
        return second
    if not second or second == first or second in first.split(MEMO_SEPARATOR):
        return first
    return f"{first}{MEMO_SEPARATOR}{second}"


def merge(existing: Sequence[ExtractedRecord], incoming: Sequence[ExtractedRecord]) -> MergeResult:
    """
    Fold `incoming` into `existing`, dropping duplicates.

    Two records are duplicates when they share a dedup key AND the same company
    name. The first-seen record wins every field except memo, which collects the
    memos of later duplicates. Same registration number with a different company
    name is kept as a separate record. Inputs are not mutated.

    Args:
        existing: Records already accepted, in order.
        incoming: New records, in order.

    Returns:
        MergeResult: Deduplicated records plus a note for every dropped duplicate.
    """
    merged: List[ExtractedRecord] = []
    duplicates: List[DuplicateEntry] = []
    # key -> company name -> position in `merged`
    seen: Dict[DedupKey, Dict[str, int]] = {}

    for record in list(existing) + list(incoming):
        key = dedup_key(record)
        if key is None:
            merged.append(record)
            continue

        name = (record.company_name or "").strip()
        names = seen.setdefault(key, {})
        if name in names:
            position = names[name]
            kept = merged[position]
            memo = merge_memos(kept.memo, record.memo)
            if memo != kept.memo:
                merged[position] = replace(kept, memo=memo)
            duplicates.append(
                DuplicateEntry(company_name=name, registration_number=record.registration_number or "")
            )
            logger.debug(f"🔄 Duplicate removed: {name} ({record.registration_number or 'no number'})")
            continue

        if names:
            # only reachable for a registration number key; a name key implies the same name
            logger.warning(
                f"⚠️ Registration number {record.registration_number} is shared by "
                f"'{next(iter(names))}' and '{name}', keeping both"
            )
        names[name] = len(merged)
        merged.append(record)

    return MergeResult(merged=merged, duplicates_removed=duplicates)
