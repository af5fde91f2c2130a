import io
from dataclasses import replace

import openpyxl
import pytest

from bizscan.exports import export_partial_workbook, export_workbook, prepare_records, preview_rows
from bizscan.models import CorrectionEntry, ExtractedRecord, PlatformStatus, ReviewResult, Verdict
from bizscan.workbook import COLUMNS, SHEET_NAME, render_partial_workbook, render_workbook


def rec(name, number, status=None, summary="", memo=""):
    return ExtractedRecord(
        company_name=name,
        registration_number=number,
        availability=status,
        availability_summary=summary,
        memo=memo,
    )


CLOSED = PlatformStatus(
    ddangyo=Verdict.REGISTERED, yogiyo=Verdict.UNKNOWN, coupangeats=Verdict.REGISTERED
)
OPEN = PlatformStatus(
    ddangyo=Verdict.REGISTERED, yogiyo=Verdict.AVAILABLE, coupangeats=Verdict.UNKNOWN
)


def load(payload):
    return openpyxl.load_workbook(io.BytesIO(payload))[SHEET_NAME]


def row_values(sheet, row):
    return [sheet.cell(row=row, column=col).value for col in range(1, len(COLUMNS) + 1)]


def test_workbook_header_and_available_first():
    payload = render_workbook(
        [
            rec("닫힌 가게", "111-11-11111", CLOSED),
            rec("열린 가게", "222-22-22222", OPEN),
            rec("요약만 있는 가게", "333-33-33333", summary="땡겨요(가능) / 요기요(불가) / 쿠팡이츠(불가)"),
        ]
    )
    sheet = load(payload)

    assert row_values(sheet, 1) == list(COLUMNS)
    assert [sheet.cell(row=r, column=1).value for r in (2, 3, 4)] == [
        "열린 가게",
        "요약만 있는 가게",
        "닫힌 가게",
    ]
    values = dict(zip(COLUMNS, row_values(sheet, 2)))
    assert values["땡겨요"] == "불가"
    assert values["요기요"] == "가능"
    assert values["쿠팡이츠"] == "불가"
    assert values["사업자번호"] == "222-22-22222"
    assert values["전화번호"] == "확인필요"
    assert sheet.cell(row=1, column=1).font.bold


def test_empty_workbook_has_header_only():
    sheet = load(render_workbook([]))
    assert row_values(sheet, 1) == list(COLUMNS)
    assert sheet.max_row == 1


def test_partial_workbook_has_summary_block():
    sheet = load(render_partial_workbook([rec("가게", "111-11-11111", OPEN)], total=5, succeeded=1, failed=2))

    assert sheet.cell(row=1, column=1).value == "처리 요약"
    assert [sheet.cell(row=2, column=c).value for c in (1, 2)] == ["총 파일 수", 5]
    assert [sheet.cell(row=3, column=c).value for c in (1, 2)] == ["성공", 1]
    assert [sheet.cell(row=4, column=c).value for c in (1, 2)] == ["실패", 2]
    assert row_values(sheet, 6) == list(COLUMNS)
    assert sheet.cell(row=7, column=1).value == "가게"


def test_preview_rows_are_deduplicated():
    rows = preview_rows([rec("가게", "111-11-11111", memo="a"), rec("가게", "1111111111", memo="b")])
    assert len(rows) == 1
    assert rows[0]["메모"] == "a; b"


class FakeReviewer:
    def __init__(self, error=None):
        self.error = error

    async def review(self, records):
        if self.error:
            raise self.error
        corrected = [replace(r, company_name=r.company_name.strip()) for r in records]
        return ReviewResult(
            corrected=corrected,
            corrections=[CorrectionEntry(field="상호명", original=" 가게", corrected="가게", index=0)],
        )


@pytest.mark.asyncio
async def test_prepare_records_reviews_then_deduplicates():
    records = [rec(" 가게", "111-11-11111"), rec("가게", "111-11-11111")]

    report = await prepare_records(records, reviewer=FakeReviewer())

    assert report.original_count == 2
    assert report.final_count == 1
    assert len(report.duplicates_removed) == 1
    assert len(report.corrections) == 1
    assert report.reviewed


@pytest.mark.asyncio
async def test_partial_export_is_deduplicated_and_reviewed():
    records = [rec(" 가게", "123-45-67890", OPEN), rec("가게", "123-45-67890", OPEN)]

    payload, report = await export_partial_workbook(records, total=3, failed=1, reviewer=FakeReviewer())

    sheet = load(payload)
    names = [sheet.cell(row=r, column=1).value for r in range(7, sheet.max_row + 1)]
    assert names == ["가게"]
    assert [sheet.cell(row=3, column=c).value for c in (1, 2)] == ["성공", 2]
    assert [sheet.cell(row=4, column=c).value for c in (1, 2)] == ["실패", 1]
    assert report.final_count == 1
    assert len(report.corrections) == 1


@pytest.mark.asyncio
async def test_export_falls_back_to_original_records_when_review_breaks():
    records = [rec("가게", "111-11-11111"), rec("가게", "111-11-11111")]

    payload, report = await export_workbook(records, reviewer=FakeReviewer(error=RuntimeError("boom")))

    assert report.final_count == 1
    assert report.corrections == []
    assert load(payload).cell(row=2, column=1).value == "가게"
