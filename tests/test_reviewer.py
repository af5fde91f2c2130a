import json

import pytest

from bizscan.models import ExtractedRecord
from bizscan.reviewer import TextReviewer, apply_correction
from tests.conftest import make_response


def record(name="샘픔", number="123-45-67890", address="서울 강남구"):
    return ExtractedRecord(company_name=name, registration_number=number, address=address)


def reply(payload):
    return make_response(json.dumps(payload, ensure_ascii=False))


@pytest.mark.asyncio
async def test_single_review_applies_corrections(mock_client):
    mock_client.chat_completions_create.return_value = reply(
        {
            "needsCorrection": True,
            "correctedData": {"상호명": "샘플", "사업자등록번호": "123-45-67890"},
            "corrections": [{"field": "상호명", "original": "샘픔", "corrected": "샘플", "reason": "오타"}],
        }
    )
    reviewer = TextReviewer(models=["m1"], client=mock_client)

    result = await reviewer.review(record())

    assert result.corrected.company_name == "샘플"
    assert result.corrected.address == "서울 강남구"
    assert [c.corrected for c in result.corrections] == ["샘플"]


@pytest.mark.asyncio
async def test_batch_review_keeps_order(mock_client):
    mock_client.chat_completions_create.return_value = reply(
        {
            "correctedData": [{"상호명": "가게 1"}, {"상호명": "가게 2"}],
            "corrections": [{"index": 1, "field": "상호명", "original": "가계 2", "corrected": "가게 2"}],
        }
    )
    reviewer = TextReviewer(models=["m1"], client=mock_client)

    result = await reviewer.review([record("가게 1"), record("가계 2", number="")])

    assert [r.company_name for r in result.corrected] == ["가게 1", "가게 2"]
    assert result.corrections[0].index == 1


@pytest.mark.asyncio
async def test_unparseable_reply_keeps_original(mock_client):
    mock_client.chat_completions_create.return_value = make_response("looks fine to me")
    reviewer = TextReviewer(models=["m1", "m2"], client=mock_client)
    original = record()

    result = await reviewer.review(original)

    assert result.corrected == original
    assert result.corrections == []
    assert mock_client.chat_completions_create.await_count == 1


@pytest.mark.asyncio
async def test_all_models_fail_keeps_originals(mock_client):
    mock_client.chat_completions_create.side_effect = Exception("503")
    reviewer = TextReviewer(models=["m1", "m2"], client=mock_client)
    batch = [record("a"), record("b")]

    result = await reviewer.review(batch)

    assert result.corrected == batch
    assert result.corrections == []
    assert mock_client.chat_completions_create.await_count == 2


@pytest.mark.asyncio
async def test_second_model_answers_after_first_fails(mock_client):
    mock_client.chat_completions_create.side_effect = [
        Exception("503"),
        reply({"correctedData": {"상호명": "샘플"}, "corrections": []}),
    ]
    reviewer = TextReviewer(models=["m1", "m2"], client=mock_client)

    result = await reviewer.review(record())

    assert result.corrected.company_name == "샘플"


@pytest.mark.asyncio
async def test_mismatched_batch_keeps_originals(mock_client):
    mock_client.chat_completions_create.return_value = reply({"correctedData": [{"상호명": "x"}]})
    reviewer = TextReviewer(models=["m1"], client=mock_client)
    batch = [record("a"), record("b")]

    result = await reviewer.review(batch)

    assert result.corrected == batch


def test_apply_correction_ignores_bad_number_and_empty_values():
    original = record()
    corrected = apply_correction(original, {"상호명": "", "사업자등록번호": "12-3"})
    assert corrected == original
