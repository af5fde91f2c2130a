import pytest
from unittest.mock import MagicMock, patch

from bizscan.approval import ApprovalGateway, ApprovalNotifier, ApprovalState


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_new_session_is_pending():
    gateway = ApprovalGateway(ttl=300, clock=FakeClock())
    handle = gateway.create("203.0.113.7", file_count=3)

    assert gateway.resolve(handle) is ApprovalState.PENDING
    assert handle.expires_at - handle.created_at == 300
    assert len(gateway) == 1


def test_approve_and_deny_only_from_pending():
    gateway = ApprovalGateway(ttl=300, clock=FakeClock())
    approved = gateway.create("a")
    denied = gateway.create("b")

    assert gateway.approve(approved.session_id)
    assert not gateway.deny(approved.session_id)
    assert gateway.deny(denied.session_id)
    assert not gateway.approve(denied.session_id)

    assert gateway.resolve(approved) is ApprovalState.APPROVED
    assert gateway.resolve(denied) is ApprovalState.DENIED


def test_unknown_session_cannot_be_decided():
    gateway = ApprovalGateway(clock=FakeClock())
    assert not gateway.approve("missing")


def test_session_expires_after_ttl():
    clock = FakeClock()
    gateway = ApprovalGateway(ttl=300, clock=clock)
    handle = gateway.create("a")

    clock.now += 301

    assert not gateway.approve(handle.session_id)
    assert gateway.resolve(handle) is ApprovalState.EXPIRED
    assert len(gateway) == 0


def test_evict_expired():
    clock = FakeClock()
    gateway = ApprovalGateway(ttl=10, clock=clock)
    gateway.create("a")
    clock.now += 5
    gateway.create("b")
    clock.now += 6

    assert gateway.evict_expired() == 1
    assert len(gateway) == 1


@pytest.mark.asyncio
async def test_wait_for_decision_returns_once_decided():
    gateway = ApprovalGateway(clock=FakeClock())
    handle = gateway.create("a")
    gateway.approve(handle.session_id)

    assert await gateway.wait_for_decision(handle, poll_interval=0) is ApprovalState.APPROVED


@pytest.mark.asyncio
async def test_wait_for_decision_times_out_pending():
    gateway = ApprovalGateway(clock=FakeClock())
    handle = gateway.create("a")

    state = await gateway.wait_for_decision(handle, poll_interval=0.01, timeout=0.05)

    assert state is ApprovalState.PENDING


@pytest.mark.asyncio
async def test_notifier_without_webhook_only_logs():
    gateway = ApprovalGateway(clock=FakeClock())
    handle = gateway.create("a", file_count=2)
    notifier = ApprovalNotifier(webhook_url=None, base_url="https://example.test/")

    with patch("bizscan.approval.ClientSession") as mock_session:
        assert await notifier.send(handle)
    mock_session.assert_not_called()

    links = notifier.links(handle)
    assert links["approve"] == f"https://example.test/api/auth/approve?sid={handle.session_id}"
    assert links["deny"].endswith(f"deny?sid={handle.session_id}")


def test_notifier_payload_carries_links():
    gateway = ApprovalGateway(clock=FakeClock())
    handle = gateway.create("a", file_count=2)
    notifier = ApprovalNotifier(webhook_url="https://hooks.example.test", base_url="https://example.test")

    embed = notifier.payload(handle)["embeds"][0]

    assert notifier.links(handle)["approve"] in embed["description"]
    assert {"name": "📊 파일 수", "value": "2개", "inline": True} in embed["fields"]


@pytest.mark.asyncio
async def test_notifier_reports_webhook_failure():
    gateway = ApprovalGateway(clock=FakeClock())
    handle = gateway.create("a")
    notifier = ApprovalNotifier(webhook_url="https://hooks.example.test", base_url="https://example.test")

    session = MagicMock()
    session.__aenter__.side_effect = ConnectionError("unreachable")
    with patch("bizscan.approval.ClientSession", return_value=session):
        assert not await notifier.send(handle)
