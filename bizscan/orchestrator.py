"""
Batch driver for the certificate pipeline.

One worker takes one file at a time through compress -> extract -> delivery
check -> enrich/review, with a fixed pause between files to stay under the
model providers' rate limits. A failed file goes back to the end of the
queue until its retry budget is spent; once the queue drains, any failed file
that still has budget (e.g. after `max_retries` was raised) is re-queued as an
automatic retry round. The current results are always available as a
snapshot, so a partial workbook can be produced at any point.
"""
import asyncio
import time
from collections import deque
from dataclasses import replace
from typing import Awaitable, Callable, Deque, Iterable, List, Optional, Set, Tuple

from loguru import logger

from bizscan.approval import ApprovalGateway, ApprovalState, SessionHandle
from bizscan.availability import AvailabilityAggregator, format_summary, is_fully_saturated
from bizscan.config import INTER_ITEM_DELAY, MAX_RETRIES
from bizscan.errors import ApprovalDenied, ConfigurationError
from bizscan.extractor import Extractor
from bizscan.image_utils import compress_image
from bizscan.models import (
    BatchItem,
    BatchSnapshot,
    ContactInfo,
    CorrectionEntry,
    DiscardedItem,
    ExtractedRecord,
    Phase,
)
from bizscan.reviewer import TextReviewer

SATURATED_REASON = "모든 배달앱에 이미 입점된 업체입니다."

ContactFinder = Callable[[ExtractedRecord], Awaitable[ContactInfo]]


class BatchOrchestrator:
    """
    Owns the queue, the result set and the failed list for one batch.

    Only this class mutates BatchItems and the result set; everything handed
    out (snapshots, callbacks) is a copy.
    """

    def __init__(
        self,
        extractor: Optional[Extractor] = None,
        aggregator: Optional[AvailabilityAggregator] = None,
        reviewer: Optional[TextReviewer] = None,
        contact_finder: Optional[ContactFinder] = None,
        compressor: Callable[[bytes], bytes] = compress_image,
        discard_saturated: bool = False,
        max_retries: int = MAX_RETRIES,
        inter_item_delay: float = INTER_ITEM_DELAY,
        auto_retry: bool = True,
        on_update: Optional[Callable[[BatchSnapshot], None]] = None,
    ):
        self.extractor = extractor or Extractor()
        self.aggregator = aggregator or AvailabilityAggregator()
        self.reviewer = reviewer
        self.contact_finder = contact_finder
        self.compressor = compressor
        self.discard_saturated = discard_saturated
        self.max_retries = max_retries
        self.inter_item_delay = inter_item_delay
        self.auto_retry = auto_retry
        self.on_update = on_update

        self._queue: Deque[BatchItem] = deque()
        self._results: List[ExtractedRecord] = []
        self._failed: List[BatchItem] = []
        self._discarded: List[DiscardedItem] = []
        self._corrections: List[CorrectionEntry] = []
        self._file_names: Set[str] = set()
        self._done: Set[str] = set()  # succeeded or discarded, never reprocessed
        self._pause_requested = False
        self._state = "idle"

    # ------------------------------------------------------------------ input

    def add_files(self, files: Iterable[Tuple[str, bytes]]) -> int:
        """Queue (file name, content) pairs; names already in the batch are ignored."""
        added = 0
        for file_name, content in files:
            if file_name in self._file_names:
                logger.debug(f"📎 '{file_name}' is already in the batch, skipping")
                continue
            self._file_names.add(file_name)
            self._queue.append(BatchItem(file_name=file_name, content=content))
            added += 1
        logger.info(f"📥 Queued {added} files ({len(self._file_names)} in batch)")
        return added

    # ---------------------------------------------------------------- control

    def pause(self) -> None:
        """Ask the loop to stop after the file currently in flight."""
        if not self._pause_requested:
            logger.info("⏸️ Pause requested, finishing the current file first")
        self._pause_requested = True

    async def resume(self) -> BatchSnapshot:
        """Continue a paused batch with the files not yet processed."""
        logger.info(f"▶️ Resuming batch with {len(self._queue)} queued files")
        return await self.run()

    def reset(self) -> None:
        if self._state == "running":
            raise RuntimeError("Cannot reset a running batch")
        self._queue.clear()
        self._results.clear()
        self._failed.clear()
        self._discarded.clear()
        self._corrections.clear()
        self._file_names.clear()
        self._done.clear()
        self._pause_requested = False
        self._state = "idle"

    async def run(
        self, approval: Optional[Tuple[ApprovalGateway, SessionHandle]] = None
    ) -> BatchSnapshot:
        """
        Process queued files until the batch completes or is paused.

        Args:
            approval: Optional (gateway, handle); the batch only starts when the
                      handle resolves to approved.

        Returns:
            BatchSnapshot: State "completed" or "paused".

        Raises:
            ApprovalDenied: The approval handle is not approved.
            ConfigurationError: The pipeline can never succeed (halts the batch;
                                the current file stays queued for a later run).
        """
        if approval is not None:
            gateway, handle = approval
            decision = gateway.resolve(handle)
            if decision is not ApprovalState.APPROVED:
                raise ApprovalDenied(f"Batch submission not approved ({decision.value})")
        if self._state == "running":
            raise RuntimeError("Batch is already running")

        self._pause_requested = False
        self._state = "running"
        start = time.perf_counter()
        first = True
        try:
            while True:
                if self._pause_requested:
                    self._state = "paused"
                    logger.info(f"⏸️ Batch paused with {len(self._queue)} files left")
                    return self._emit()
                if not self._queue and not self._start_retry_round():
                    break

                item = self._queue.popleft()
                if item.file_name in self._done:
                    logger.debug(f"⏭️ '{item.file_name}' already processed, skipping")
                    continue

                if not first and self.inter_item_delay > 0:
                    await asyncio.sleep(self.inter_item_delay)
                first = False
                await self._process(item)
            self._state = "completed"
        except ConfigurationError:
            logger.error("🛑 Batch halted: pipeline is not configured")
            raise
        finally:
            # an interrupted loop never leaves the batch stuck in "running"
            if self._state == "running":
                self._state = "halted"

        logger.info(
            f"🏁 Batch completed in {time.perf_counter() - start:.1f}s: "
            f"{len(self._results)} succeeded, {len(self._failed)} failed, "
            f"{len(self._discarded)} discarded"
        )
        return self._emit()

    # --------------------------------------------------------------- pipeline

    async def _process(self, item: BatchItem) -> None:
        try:
            self._transition(item, Phase.COMPRESSING)
            content = self.compressor(item.content)
            self._transition(item, Phase.EXTRACTING)
            record = await self.extractor.extract(content, compress=False, source_file=item.file_name)

            self._transition(item, Phase.CHECKING)
            status = await self.aggregator.check_all(record.registration_number)
        except (ConfigurationError, asyncio.CancelledError):
            # not this file's fault; it stays first in line
            item.phase = Phase.QUEUED
            self._queue.appendleft(item)
            raise
        except Exception as e:
            self._handle_failure(item, e)
            return

        record = replace(record, availability=status, availability_summary=format_summary(status))

        if self.discard_saturated and is_fully_saturated(status):
            self._done.add(item.file_name)
            self._discarded.append(DiscardedItem(file_name=item.file_name, reason=SATURATED_REASON))
            logger.info(f"🗑️ '{item.file_name}' ({record.registration_number}) is on every platform, discarded")
            self._emit()
            return

        self._transition(item, Phase.REVIEWING)
        record = await self._enrich(record)

        item.phase = Phase.SUCCEEDED
        item.last_error = None
        self._done.add(item.file_name)
        self._results.append(record)
        logger.info(f"✅ '{item.file_name}' done: {record.company_name} / {record.availability_summary}")
        self._emit()

    async def _enrich(self, record: ExtractedRecord) -> ExtractedRecord:
        """Contact lookup and text review; either may fail without affecting the record."""
        if self.contact_finder is not None:
            try:
                contact = await self.contact_finder(record)
                record = replace(record, phone_number=contact.phone_number, open_hours=contact.open_hours)
            except Exception as e:
                logger.warning(f"⚠️ Contact lookup failed for '{record.source_file}', keeping record: {e}")
        if self.reviewer is not None:
            try:
                result = await self.reviewer.review(record)
            except Exception as e:
                logger.warning(f"⚠️ Text review failed for '{record.source_file}', keeping record: {e}")
            else:
                if isinstance(result.corrected, ExtractedRecord):
                    record = result.corrected
                self._corrections.extend(result.corrections)
        return record

    def _handle_failure(self, item: BatchItem, error: Exception) -> None:
        item.last_error = str(error) or type(error).__name__
        if item.retry_count >= self.max_retries:
            item.phase = Phase.FAILED
            self._failed.append(item)
            logger.warning(
                f"❌ '{item.file_name}' failed permanently after {item.retry_count} retries: {item.last_error}"
            )
        else:
            item.retry_count += 1
            item.phase = Phase.QUEUED
            self._queue.append(item)
            logger.warning(
                f"🔁 '{item.file_name}' failed ({item.last_error}), "
                f"re-queued (retry {item.retry_count}/{self.max_retries})"
            )
        self._emit()

    def _start_retry_round(self) -> bool:
        """Re-queue every failed file that still has retry budget. False when none has."""
        if not self.auto_retry:
            return False
        retryable = [i for i in self._failed if i.retry_count < self.max_retries]
        if not retryable:
            return False

        self._failed = [i for i in self._failed if i.retry_count >= self.max_retries]
        for item in retryable:
            item.retry_count += 1
            item.phase = Phase.QUEUED
            self._queue.append(item)
        logger.info(f"🔁 Auto-retry round: re-queued {len(retryable)} failed files")
        return True

    # ------------------------------------------------------------ observation

    def _transition(self, item: BatchItem, phase: Phase) -> None:
        item.phase = phase
        logger.debug(f"➡️ '{item.file_name}' → {phase.value}")
        self._emit()

    def _emit(self) -> BatchSnapshot:
        snap = self.snapshot()
        if self.on_update is not None:
            self.on_update(snap)
        return snap

    @property
    def total(self) -> int:
        return len(self._file_names)

    @property
    def processed(self) -> int:
        """Files in a terminal state: succeeded, discarded, or out of retries."""
        exhausted = sum(1 for i in self._failed if i.retry_count >= self.max_retries)
        return len(self._done) + exhausted

    @property
    def progress(self) -> float:
        return self.processed / self.total if self.total else 0.0

    @property
    def state(self) -> str:
        return self._state

    def snapshot(self) -> BatchSnapshot:
        """Copy of the current results, failures and discards."""
        return BatchSnapshot(
            state=self._state,
            results=[replace(r) for r in self._results],
            failed=[replace(i) for i in self._failed],
            discarded=[replace(d) for d in self._discarded],
            total=self.total,
            processed=self.processed,
            progress=self.progress,
            corrections=[replace(c) for c in self._corrections],
        )
