import json

import pytest
import requests

from document_extraction import GEMINI_ENDPOINT, GeminiDocumentExtractor, validate_upload
from errors import ExtractionError
from records import ReleaseOrder

from conftest import FakeHttp, FakeResponse

PDF = b"%PDF-1.4 test"


def _answer(obj):
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": json.dumps(obj)}]}}]})


def _extractor(*answers, api_key="key-123"):
    http = FakeHttp(*answers)
    return GeminiDocumentExtractor(api_key, model="test-model", timeout=5, http=http), http


def test_request_shape():
    extractor, http = _extractor(_answer({"isDhanDeliveryOrder": True}))
    assert extractor.is_dhan_delivery_order(PDF) is True

    (call,) = http.calls
    assert call["url"] == GEMINI_ENDPOINT.format(model="test-model")
    assert call["params"] == {"key": "key-123"}
    assert call["timeout"] == 5
    parts = call["json"]["contents"][0]["parts"]
    assert parts[1]["inline_data"]["mime_type"] == "application/pdf"
    assert call["json"]["generationConfig"]["responseMimeType"] == "application/json"


def test_extract_release_order():
    fields = {
        "doNo": "2324100123", "doDate": "01-11-2024", "lotNo": "L-7", "issueCenter": "Sehore",
        "godown": "WH Sehore", "quantity": "290.00", "validUpto": "15-11-2024", "uparjanVarsh": "2024-25",
    }
    extractor, _ = _extractor(_answer(fields))
    order = extractor.extract_release_order(PDF)
    assert isinstance(order, ReleaseOrder)
    assert order.do_no == "2324100123"
    assert order.allotted_qtls == pytest.approx(290.0)


def test_release_order_missing_fields_is_an_error():
    extractor, _ = _extractor(_answer({"doNo": "1"}))
    with pytest.raises(ExtractionError, match="Failed to analyze the RO PDF"):
        extractor.extract_release_order(PDF)


def test_extract_cmr_order_trims_fields():
    extractor, _ = _extractor(_answer({"doNo": " DO-1 ", "orderNo": " CMR-9 ", "depositDate": "02-12-2024"}))
    assert extractor.extract_cmr_order(PDF) == {
        "doNo": "DO-1", "orderNo": "CMR-9", "depositDate": "02-12-2024", "depositedAt": "",
    }


def test_weighing_slip_fields_are_strings():
    extractor, _ = _extractor(_answer({"rstNo": 4521, "truckNo": "MP04 GA 1234", "liftedQuantityInKg": "12,150"}))
    slip = extractor.extract_weighing_slip(b"jpeg", "image/jpeg")
    assert slip == {"rstNo": "4521", "truckNo": "MP04 GA 1234", "liftedQuantityInKg": "12,150", "numberOfBags": ""}


@pytest.mark.parametrize("answer", [
    requests.ConnectionError("offline"),
    FakeResponse({"error": "quota"}, status_code=429),
    FakeResponse({"candidates": []}),
    FakeResponse({"candidates": [{"content": {"parts": [{"text": "not json"}]}}]}),
])
def test_service_failures_become_extraction_errors(answer):
    extractor, _ = _extractor(answer)
    with pytest.raises(ExtractionError, match="Failed to validate the CMR document type."):
        extractor.is_cmr_deposit_order(PDF)


def test_classification_without_boolean_is_an_error():
    extractor, _ = _extractor(_answer({"isCmrDepositOrder": "yes"}))
    with pytest.raises(ExtractionError):
        extractor.is_cmr_deposit_order(PDF)


def test_missing_api_key():
    extractor, http = _extractor(api_key="")
    with pytest.raises(ExtractionError, match="GEMINI_API_KEY"):
        extractor.is_dhan_delivery_order(PDF)
    assert http.calls == []


def test_validate_upload():
    validate_upload(PDF, "application/pdf")
    with pytest.raises(ExtractionError, match="Please upload a valid PDF file."):
        validate_upload(PDF, "image/png")
    with pytest.raises(ExtractionError, match="image"):
        validate_upload(b"x", "text/plain", ["image/jpeg", "image/png"])
    with pytest.raises(ExtractionError, match="too large"):
        validate_upload(b"x" * 11, "application/pdf", max_bytes=10)
