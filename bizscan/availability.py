import asyncio
import time
from typing import Dict, Optional, Tuple

from loguru import logger

from bizscan.models import PlatformStatus, Verdict
from bizscan.normalizer import digits_only
from bizscan.probes import CoupangEatsProbe, DdangyoProbe, PlatformProbe, YogiyoProbe

# Display order of the platforms, everywhere
PLATFORM_LABELS = (
    ("ddangyo", "땡겨요"),
    ("yogiyo", "요기요"),
    ("coupangeats", "쿠팡이츠"),
)
POSITIVE_LABEL = "가능"
NEGATIVE_LABEL = "불가"
SUMMARY_SEPARATOR = " / "


class AvailabilityAggregator:
    """Runs the three platform probes for one registration number and combines the verdicts."""

    def __init__(
        self,
        ddangyo: Optional[PlatformProbe] = None,
        yogiyo: Optional[PlatformProbe] = None,
        coupangeats: Optional[PlatformProbe] = None,
    ):
        self.ddangyo = ddangyo or DdangyoProbe()
        self.yogiyo = yogiyo or YogiyoProbe()
        self.coupangeats = coupangeats or CoupangEatsProbe()

    async def check_all(self, registration_number: str) -> PlatformStatus:
        """
        Check onboarding status on every platform concurrently.

        Waits for all three probes to settle; a slow platform is never cut short.
        A number without exactly 10 digits returns all-UNKNOWN without any call.

        Args:
            registration_number (str): Registration number in any format.

        Returns:
            PlatformStatus: One verdict per platform.
        """
        digits = digits_only(registration_number)
        if len(digits) != 10:
            logger.debug(f"🔍 Skipping delivery check for unusable number '{registration_number}'")
            return PlatformStatus.unknown()

        start = time.perf_counter()
        ddangyo, yogiyo, coupangeats = await asyncio.gather(
            self.ddangyo.check(digits),
            self.yogiyo.check(digits),
            self.coupangeats.check(digits),
        )
        status = PlatformStatus(ddangyo=ddangyo, yogiyo=yogiyo, coupangeats=coupangeats)
        logger.debug(
            f"📋 Delivery check {digits}: {status.as_dict()} "
            f"({time.perf_counter() - start:.2f}s)"
        )
        return status


def is_fully_saturated(status: PlatformStatus) -> bool:
    """True only when every platform explicitly reports the business as registered."""
    return (
        status.ddangyo is Verdict.REGISTERED
        and status.yogiyo is Verdict.REGISTERED
        and status.coupangeats is Verdict.REGISTERED
    )


def format_summary(status: PlatformStatus) -> str:
    """
    Render e.g. "땡겨요(가능) / 요기요(불가) / 쿠팡이츠(불가)".

    Only AVAILABLE gets the positive label; REGISTERED and UNKNOWN both read as 불가.
    """
    parts = []
    for attr, label in PLATFORM_LABELS:
        verdict = getattr(status, attr)
        mark = POSITIVE_LABEL if verdict is Verdict.AVAILABLE else NEGATIVE_LABEL
        parts.append(f"{label}({mark})")
    return SUMMARY_SEPARATOR.join(parts)


def summary_flags(summary: str) -> Dict[str, bool]:
    """Read a summary string back into {platform: available?}."""
    summary = summary or ""
    return {
        attr: f"{label}({POSITIVE_LABEL})" in summary
        for attr, label in PLATFORM_LABELS
    }


async def check_business_number(
    raw: str,
    aggregator: Optional[AvailabilityAggregator] = None,
) -> Tuple[str, PlatformStatus]:
    """
    Standalone delivery check for a typed-in registration number.

    Raises:
        ValueError: If `raw` does not contain exactly 10 digits.
    """
    digits = (raw or "").strip().replace("-", "")
    if not digits:
        raise ValueError("Registration number is required")
    if len(digits) != 10 or not digits.isdigit():
        raise ValueError(f"Not a valid registration number: {raw!r}")
    aggregator = aggregator or AvailabilityAggregator()
    status = await aggregator.check_all(digits)
    formatted = f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"
    return formatted, status
