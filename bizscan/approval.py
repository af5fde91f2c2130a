"""
Out-of-band approval for batch submissions.

A requester creates a session, an operator is notified (Discord-style
webhook) with approve/deny links, and the batch only starts once the session
resolves to approved. Sessions expire after a TTL and are evicted lazily.
"""
import asyncio
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from aiohttp import ClientSession, ClientTimeout
from loguru import logger

from bizscan.config import APPROVAL_TTL, DISCORD_WEBHOOK_URL, PUBLIC_BASE_URL


class ApprovalState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionHandle:
    session_id: str
    requester_id: str
    file_count: int
    created_at: float
    expires_at: float


@dataclass
class _Session:
    handle: SessionHandle
    state: ApprovalState = ApprovalState.PENDING


class ApprovalGateway:
    """In-process approval store. Pass one instance to whoever needs it."""

    def __init__(self, ttl: float = APPROVAL_TTL, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, _Session] = {}

    def create(self, requester_id: str, file_count: int = 0) -> SessionHandle:
        self.evict_expired()
        now = self._clock()
        handle = SessionHandle(
            session_id=secrets.token_urlsafe(16),
            requester_id=requester_id,
            file_count=file_count,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._sessions[handle.session_id] = _Session(handle=handle)
        logger.info(f"🔐 Approval requested by {requester_id} for {file_count} files (session {handle.session_id})")
        return handle

    def _live(self, session_id: str) -> Optional[_Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() > session.handle.expires_at:
            del self._sessions[session_id]
            return None
        return session

    def resolve(self, handle: SessionHandle) -> ApprovalState:
        session = self._live(handle.session_id)
        if session is None:
            return ApprovalState.EXPIRED
        return session.state

    def _decide(self, session_id: str, state: ApprovalState) -> bool:
        session = self._live(session_id)
        if session is None or session.state is not ApprovalState.PENDING:
            return False
        session.state = state
        logger.info(f"🔐 Session {session_id} {state.value}")
        return True

    def approve(self, session_id: str) -> bool:
        return self._decide(session_id, ApprovalState.APPROVED)

    def deny(self, session_id: str) -> bool:
        return self._decide(session_id, ApprovalState.DENIED)

    def evict_expired(self) -> int:
        now = self._clock()
        expired = [sid for sid, s in self._sessions.items() if now > s.handle.expires_at]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    async def wait_for_decision(
        self,
        handle: SessionHandle,
        poll_interval: float = 2.0,
        timeout: Optional[float] = None,
    ) -> ApprovalState:
        """Poll until the session leaves PENDING, expires, or `timeout` passes."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            state = self.resolve(handle)
            if state is not ApprovalState.PENDING:
                return state
            if deadline is not None and time.monotonic() >= deadline:
                return ApprovalState.PENDING
            await asyncio.sleep(poll_interval)

    def __len__(self) -> int:
        return len(self._sessions)


class ApprovalNotifier:
    """Sends approve/deny links for a session to an operator webhook."""

    def __init__(self, webhook_url: Optional[str] = DISCORD_WEBHOOK_URL, base_url: str = PUBLIC_BASE_URL):
        self.webhook_url = webhook_url
        self.base_url = base_url.rstrip("/")

    def links(self, handle: SessionHandle) -> Dict[str, str]:
        return {
            "approve": f"{self.base_url}/api/auth/approve?sid={handle.session_id}",
            "deny": f"{self.base_url}/api/auth/deny?sid={handle.session_id}",
        }

    def payload(self, handle: SessionHandle) -> dict:
        links = self.links(handle)
        requested = datetime.fromtimestamp(handle.created_at, tz=timezone.utc).isoformat()
        return {
            "content": "@everyone",
            "embeds": [
                {
                    "title": "🚨 BizScan 분석 승인 요청",
                    "color": 0xFF6B6B,
                    "fields": [
                        {"name": "📍 요청자", "value": handle.requester_id, "inline": True},
                        {"name": "🕐 요청 시간", "value": requested, "inline": True},
                        {"name": "📊 파일 수", "value": f"{handle.file_count}개", "inline": True},
                    ],
                    "description": (
                        "**승인 또는 거부를 선택하세요:**\n\n"
                        f"✅ **[승인하기]({links['approve']})**\n\n"
                        f"❌ **[거부하기]({links['deny']})**"
                    ),
                    "timestamp": requested,
                }
            ],
        }

    async def send(self, handle: SessionHandle) -> bool:
        """
        Notify the operator. Without a webhook the links are only logged.

        Returns:
            bool: False when the webhook call failed.
        """
        if not self.webhook_url:
            links = self.links(handle)
            logger.info(f"🔐 Approve: {links['approve']}")
            logger.info(f"🔐 Deny: {links['deny']}")
            return True
        try:
            async with ClientSession(timeout=ClientTimeout(total=10)) as session:
                async with session.post(self.webhook_url, json=self.payload(handle)) as resp:
                    if resp.status >= 300:
                        logger.warning(f"💬 Webhook rejected approval request: HTTP {resp.status}")
                        return False
        except Exception as e:
            logger.warning(f"💬 Webhook error for session {handle.session_id}: {e}")
            return False
        logger.info(f"💬 Approval request sent for session {handle.session_id}")
        return True
