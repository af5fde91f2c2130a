"""Excel output for the final record list."""
import io
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from bizscan.availability import NEGATIVE_LABEL, POSITIVE_LABEL, summary_flags
from bizscan.models import ExtractedRecord, Verdict

SHEET_NAME = "사업자등록증 데이터"

# header -> column width
COLUMNS = {
    "상호명": 40,
    "대표자명": 15,
    "전화번호": 20,
    "영업시간": 20,
    "주소": 60,
    "사업자번호": 18,
    "땡겨요": 10,
    "요기요": 10,
    "쿠팡이츠": 10,
    "메모": 30,
}
PLATFORM_COLUMNS = (("ddangyo", "땡겨요"), ("yogiyo", "요기요"), ("coupangeats", "쿠팡이츠"))

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFE0E0E0")


def _flags(record: ExtractedRecord) -> Dict[str, bool]:
    if record.availability is not None:
        return {attr: getattr(record.availability, attr) is Verdict.AVAILABLE for attr, _ in PLATFORM_COLUMNS}
    return summary_flags(record.availability_summary)


def records_to_rows(records: Sequence[ExtractedRecord]) -> List[Dict[str, Any]]:
    """
    One row per record with the fixed column set.

    Rows with at least one platform open for onboarding come first; order is
    otherwise preserved.
    """
    rows = []
    for record in records:
        flags = _flags(record)
        row = {
            "상호명": record.company_name,
            "대표자명": record.representative_name or "",
            "전화번호": record.phone_number,
            "영업시간": record.open_hours,
            "주소": record.address,
            "사업자번호": record.registration_number,
        }
        for attr, header in PLATFORM_COLUMNS:
            row[header] = POSITIVE_LABEL if flags[attr] else NEGATIVE_LABEL
        row["메모"] = record.memo
        rows.append((not any(flags.values()), row))
    return [row for _, row in sorted(rows, key=lambda pair: pair[0])]


def _style(sheet, header_row: int, row_count: int) -> None:
    for index, width in enumerate(COLUMNS.values(), start=1):
        letter = get_column_letter(index)
        sheet.column_dimensions[letter].width = width
        cell = sheet.cell(row=header_row, column=index)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
    last = get_column_letter(len(COLUMNS))
    sheet.auto_filter.ref = f"A{header_row}:{last}{header_row + max(row_count, 0)}"


def _render(records: Sequence[ExtractedRecord], summary: Optional[List[List[Any]]] = None) -> bytes:
    rows = records_to_rows(records)
    frame = pd.DataFrame(rows, columns=list(COLUMNS))
    start_row = len(summary) + 1 if summary else 0

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False, startrow=start_row)
        sheet = writer.sheets[SHEET_NAME]
        for row_index, values in enumerate(summary or [], start=1):
            for col_index, value in enumerate(values, start=1):
                sheet.cell(row=row_index, column=col_index, value=value)
        if summary:
            sheet.cell(row=1, column=1).font = HEADER_FONT
        _style(sheet, header_row=start_row + 1, row_count=len(rows))
    return buffer.getvalue()


def render_workbook(records: Sequence[ExtractedRecord]) -> bytes:
    """Render the final records as an .xlsx file and return its bytes."""
    return _render(records)


def render_partial_workbook(
    records: Sequence[ExtractedRecord], total: int, succeeded: int, failed: int
) -> bytes:
    """Same as render_workbook, with a processing summary above the table (for paused/partial runs)."""
    summary = [
        ["처리 요약"],
        ["총 파일 수", total],
        ["성공", succeeded],
        ["실패", failed],
    ]
    return _render(records, summary=summary)
