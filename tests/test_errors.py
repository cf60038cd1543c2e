"""Tests for the catalog-backed error classifier."""

import pytest

from reciplan.config.settings import ErrorCatalog, ErrorCatalogEntry
from reciplan.models.ingest import IngestErrorCode
from reciplan.services.errors import CatalogErrorClassifier


@pytest.fixture
def classifier(settings) -> CatalogErrorClassifier:
    return CatalogErrorClassifier(settings.error_catalog)


@pytest.mark.parametrize("code", list(IngestErrorCode))
def test_every_code_has_a_message(classifier, code):
    assert classifier.get_message(code)
    assert classifier.get_summary(code)


def test_video_unavailable_is_not_recoverable(classifier):
    assert classifier.is_recoverable(IngestErrorCode.VIDEO_UNAVAILABLE) is False
    assert classifier.get_retry_label(IngestErrorCode.VIDEO_UNAVAILABLE) is None


@pytest.mark.parametrize(
    ("code", "label"),
    [
        (IngestErrorCode.ASR_FAILED, "Retry Audio Processing"),
        (IngestErrorCode.OCR_FAILED, "Retry Text Recognition"),
        (IngestErrorCode.LLM_FAILED, "Retry AI Processing"),
        (IngestErrorCode.PERSIST_FAILED, "Retry Save"),
        (IngestErrorCode.UNKNOWN_ERROR, "Try Again"),
    ],
)
def test_recoverable_codes_have_retry_labels(classifier, code, label):
    assert classifier.is_recoverable(code) is True
    assert classifier.get_retry_label(code) == label


def test_retry_label_defaults_for_recoverable_entry_without_label():
    entries = {
        code: ErrorCatalogEntry(message=f"{code.value} message", summary=code.value, recoverable=True)
        for code in IngestErrorCode
    }
    classifier = CatalogErrorClassifier(ErrorCatalog(errors=entries))

    assert classifier.get_retry_label(IngestErrorCode.OCR_FAILED) == "Try Again"


def test_messages_match_catalog(classifier):
    assert classifier.get_message(IngestErrorCode.PERSIST_FAILED) == (
        "We couldn't save your recipe. Please try again or check your internet connection."
    )
    assert classifier.get_summary(IngestErrorCode.LLM_FAILED) == "AI processing failed"
