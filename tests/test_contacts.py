import pytest

from bizscan.contacts import lookup_contact, region_from_address
from bizscan.models import ExtractedRecord
from tests.conftest import make_response


@pytest.mark.parametrize(
    "address,expected",
    [
        ("충청북도 진천군 진천읍 중앙로 1", "진천"),
        ("서울특별시 강남구", "강남"),
        ("제주", "제주"),
        ("", ""),
    ],
)
def test_region_from_address(address, expected):
    assert region_from_address(address) == expected


@pytest.mark.asyncio
async def test_lookup_fills_found_fields(mock_client):
    mock_client.chat_completions_create.return_value = make_response(
        '```json\n{"phoneNumber": "043-123-4567", "openTime": ""}\n```'
    )
    record = ExtractedRecord(company_name="진천 식당", address="충청북도 진천군 진천읍 중앙로 1")

    contact = await lookup_contact(record, client=mock_client)

    assert contact.phone_number == "043-123-4567"
    assert contact.open_hours == "확인필요"
    prompt = mock_client.chat_completions_create.call_args.kwargs["messages"][0]["content"]
    assert "진천 식당" in prompt


@pytest.mark.asyncio
async def test_lookup_failure_is_unconfirmed(mock_client):
    mock_client.chat_completions_create.side_effect = Exception("timeout")

    contact = await lookup_contact(ExtractedRecord(company_name="가게"), client=mock_client)

    assert (contact.phone_number, contact.open_hours) == ("확인필요", "확인필요")


@pytest.mark.asyncio
async def test_lookup_skipped_without_name(mock_client):
    contact = await lookup_contact(ExtractedRecord(), client=mock_client)

    assert contact.phone_number == "확인필요"
    mock_client.chat_completions_create.assert_not_awaited()
