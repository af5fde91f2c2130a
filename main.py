import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Tuple

from loguru import logger

from bizscan.availability import check_business_number, format_summary
from bizscan.clients import OpenRouterClient, PlatformClient
from bizscan.config import INPUT_DIR, LOG_LEVEL, OUTPUT_XLSX
from bizscan.contacts import lookup_contact
from bizscan.exports import export_partial_workbook, export_workbook
from bizscan.orchestrator import BatchOrchestrator
from bizscan.reviewer import TextReviewer

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"}


def load_images(folder: str) -> List[Tuple[str, bytes]]:
    """Read every image file in `folder` (sorted by name) as (file name, bytes)."""
    paths = sorted(p for p in Path(folder).iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
    return [(p.name, p.read_bytes()) for p in paths]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract business certificates into an Excel workbook.")
    parser.add_argument("input_dir", nargs="?", default=INPUT_DIR, help="Folder with certificate images")
    parser.add_argument("-o", "--output", default=OUTPUT_XLSX, help="Workbook to write")
    parser.add_argument("--discard-saturated", action="store_true",
                        help="Drop businesses already onboarded on every platform")
    parser.add_argument("--review", action="store_true", help="Run the LLM text review before export")
    parser.add_argument("--contacts", action="store_true", help="Look up phone number and opening hours")
    parser.add_argument("--check", metavar="NUMBER", help="Only run the delivery check for one number")
    return parser.parse_args(argv)


async def run_check(number: str) -> None:
    formatted, status = await check_business_number(number)
    print(f"{formatted}: {format_summary(status)}  {status.as_dict()}")


async def run_batch(args: argparse.Namespace) -> None:
    """
    Run the full pipeline over a folder of images and write the workbook.

    - Each file goes through extraction, delivery check and enrichment in turn.
    - When the batch ends with failures, a partial workbook with a summary is written.
    """
    files = load_images(args.input_dir)
    if not files:
        logger.error(f"No images found under {args.input_dir}")
        return

    reviewer = TextReviewer() if args.review else None
    orchestrator = BatchOrchestrator(
        contact_finder=lookup_contact if args.contacts else None,
        discard_saturated=args.discard_saturated,
        on_update=lambda snap: logger.debug(f"📊 {snap.processed}/{snap.total} ({snap.progress:.0%})"),
    )
    orchestrator.add_files(files)
    snapshot = await orchestrator.run()

    output_path = Path(args.output)
    if snapshot.state == "paused" or snapshot.failed:
        payload, report = await export_partial_workbook(
            snapshot.results,
            total=snapshot.total,
            failed=len(snapshot.failed),
            reviewer=reviewer,
        )
        for item in snapshot.failed:
            logger.warning(f"❌ {item.file_name}: {item.last_error}")
    else:
        payload, report = await export_workbook(snapshot.results, reviewer=reviewer)
    logger.info(
        f"🧾 {report.original_count} records → {report.final_count} "
        f"({len(report.duplicates_removed)} duplicates, {len(report.corrections)} corrections)"
    )
    output_path.write_bytes(payload)
    logger.info(
        f"💾 Wrote {output_path} ({report.final_count} rows, "
        f"{snapshot.discarded_count} discarded, {len(snapshot.failed)} failed)"
    )


async def main():
    args = parse_args()

    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    try:
        if args.check:
            await run_check(args.check)
        else:
            await run_batch(args)
    finally:
        # Cleanup: close shared sessions to prevent unclosed connector warnings
        await PlatformClient().close()
        await OpenRouterClient().close()

if __name__ == "__main__":
    asyncio.run(main())
