"""Tests for the shared datasheet extraction cache."""

from datetime import timedelta
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.orm import Session

from partswap.exceptions import InvalidOperationException, UpstreamUnavailableException
from partswap.models.component import Component
from partswap.models.datasheet_cache import CacheStatus, DatasheetCacheEntry, utc_now
from partswap.schemas.extraction import (
    ExtractedPin,
    PackageExtractionResult,
    PackagePinout,
    PdfText,
)
from partswap.services.component_service import ComponentService
from partswap.services.datasheet_cache_service import DatasheetCacheService
from partswap.services.llm_extraction_service import LLMExtractionService
from partswap.services.pdf_text_service import PdfTextService

DATASHEET_URL = "https://www.diodes.com/assets/Datasheets/AZ1117C.pdf"
DATASHEET_TEXT = "AZ1117C low dropout regulator. " * 20


@pytest.fixture
def pdf_text_service() -> Mock:
    service = Mock(spec=PdfTextService)
    service.extract_from_url.return_value = PdfText(text=DATASHEET_TEXT, page_count=12)
    return service


@pytest.fixture
def llm_extraction_service() -> Mock:
    service = Mock(spec=LLMExtractionService)
    service.is_available = True
    service.extract_packages.return_value = PackageExtractionResult(
        pinouts_by_package={
            "SOT-223": PackagePinout(
                pins=[
                    ExtractedPin(pin_number=1, pin_name="ADJ", pin_function="ADJUST"),
                    ExtractedPin(pin_number=2, pin_name="VOUT", pin_function="OUTPUT_VOLTAGE"),
                    ExtractedPin(pin_number=3, pin_name="VIN", pin_function="INPUT_VOLTAGE"),
                ],
                aliases=["SOT223"],
                suffix_hints=["H"],
            ),
            "TO-252": PackagePinout(
                pins=[
                    ExtractedPin(pin_number=1, pin_name="GND", pin_function="GROUND"),
                    ExtractedPin(pin_number=2, pin_name="VOUT", pin_function="OUTPUT_VOLTAGE"),
                    ExtractedPin(pin_number=3, pin_name="VIN", pin_function="INPUT_VOLTAGE"),
                ],
                aliases=["DPAK"],
                suffix_hints=["D"],
            ),
        },
        specs={"vin_max": 15.0, "iout_max": 1.0},
        model="gpt-5-mini",
        tokens=5400,
        cost=0.0123,
    )
    return service


@pytest.fixture
def cache_service(session: Session, pdf_text_service: Mock, llm_extraction_service: Mock) -> DatasheetCacheService:
    return DatasheetCacheService(
        db=session,
        pdf_text_service=pdf_text_service,
        llm_extraction_service=llm_extraction_service,
        ttl_days=30,
        raw_text_limit=100,
    )


def _add_entry(session: Session, status: CacheStatus, url: str = DATASHEET_URL, **fields) -> DatasheetCacheEntry:
    entry = DatasheetCacheEntry(
        datasheet_url=url,
        status=status,
        expires_at=fields.pop("expires_at", utc_now() + timedelta(days=30)),
        **fields,
    )
    session.add(entry)
    session.commit()
    return entry


class TestGetOrExtractDatasheet:
    """Test cases for the cache state machine."""

    def test_miss_extracts_and_stores(self, cache_service, session, pdf_text_service, llm_extraction_service):
        url = f"{DATASHEET_URL}?utm_source=digikey"

        extraction = cache_service.get_or_extract_datasheet(url, "AZ1117CH-3.3TRG1")

        assert extraction is not None
        assert extraction.id is not None
        assert set(extraction.pinouts_by_package) == {"SOT-223", "TO-252"}
        assert extraction.pinouts_by_package["SOT-223"].suffix_hints == ["H"]
        assert extraction.specs == {"vin_max": 15.0, "iout_max": 1.0}
        assert extraction.page_count == 12

        # Download uses the URL as given; the key drops tracking parameters
        pdf_text_service.extract_from_url.assert_called_once_with(url)
        llm_extraction_service.extract_packages.assert_called_once_with(DATASHEET_TEXT, "AZ1117CH-3.3TRG1")

        entry = session.get(DatasheetCacheEntry, extraction.id)
        assert entry.datasheet_url == DATASHEET_URL
        assert entry.status == CacheStatus.COMPLETED
        assert entry.raw_text == DATASHEET_TEXT[:100]
        assert entry.text_length == len(DATASHEET_TEXT)
        assert entry.extraction_model == "gpt-5-mini"
        assert entry.extraction_tokens == 5400
        assert entry.expires_at > utc_now() + timedelta(days=29)

    def test_second_variant_hits_cache(self, cache_service, pdf_text_service, llm_extraction_service):
        first = cache_service.get_or_extract_datasheet(DATASHEET_URL, "AZ1117CH-3.3TRG1")
        second = cache_service.get_or_extract_datasheet(f"{DATASHEET_URL}?utm_campaign=x", "AZ1117CD-3.3TRG1")

        assert second is not None
        assert second.id == first.id
        assert second.pinouts_by_package.keys() == first.pinouts_by_package.keys()
        assert pdf_text_service.extract_from_url.call_count == 1
        assert llm_extraction_service.extract_packages.call_count == 1

    def test_processing_entry_is_not_extracted_twice(self, cache_service, session, llm_extraction_service):
        _add_entry(session, CacheStatus.PROCESSING)

        assert cache_service.get_or_extract_datasheet(DATASHEET_URL, "AZ1117CH-3.3TRG1") is None
        llm_extraction_service.extract_packages.assert_not_called()

    def test_failed_entry_is_not_retried(self, cache_service, session, pdf_text_service):
        _add_entry(session, CacheStatus.FAILED, error_message="404")

        assert cache_service.get_or_extract_datasheet(DATASHEET_URL) is None
        pdf_text_service.extract_from_url.assert_not_called()

    def test_pending_entry_is_claimed(self, cache_service, session, llm_extraction_service):
        entry = _add_entry(session, CacheStatus.PENDING)

        extraction = cache_service.get_or_extract_datasheet(DATASHEET_URL, "AZ1117CH-3.3TRG1")

        assert extraction is not None
        assert extraction.id == entry.id
        llm_extraction_service.extract_packages.assert_called_once()

    def test_download_failure_marks_entry_failed(self, cache_service, session, pdf_text_service):
        pdf_text_service.extract_from_url.side_effect = UpstreamUnavailableException("Datasheet host", "404 Not Found")

        assert cache_service.get_or_extract_datasheet(DATASHEET_URL, "AZ1117CH-3.3TRG1") is None

        entry = cache_service.get_entry_by_url(DATASHEET_URL)
        assert entry.status == CacheStatus.FAILED
        assert "404 Not Found" in entry.error_message

        # The failure sticks until the entry is cleared or re-extracted
        assert cache_service.get_or_extract_datasheet(DATASHEET_URL) is None
        assert pdf_text_service.extract_from_url.call_count == 1

    def test_llm_failure_marks_entry_failed(self, cache_service, llm_extraction_service):
        llm_extraction_service.extract_packages.side_effect = RuntimeError("rate limited")

        assert cache_service.get_or_extract_datasheet(DATASHEET_URL) is None
        assert cache_service.get_entry_by_url(DATASHEET_URL).status == CacheStatus.FAILED

    def test_lost_insert_race_returns_none(self, cache_service, session, llm_extraction_service):
        _add_entry(session, CacheStatus.PROCESSING)

        # Simulate a worker that read before the other one inserted
        with patch.object(cache_service, "_get_by_key", return_value=None):
            assert cache_service.get_or_extract_datasheet(DATASHEET_URL) is None

        llm_extraction_service.extract_packages.assert_not_called()
        assert session.query(DatasheetCacheEntry).count() == 1

    def test_missing_url_returns_none(self, cache_service, pdf_text_service):
        assert cache_service.get_or_extract_datasheet(None) is None
        assert cache_service.get_or_extract_datasheet("") is None
        pdf_text_service.extract_from_url.assert_not_called()

    def test_ai_disabled_raises_on_miss(self, cache_service, session, llm_extraction_service):
        llm_extraction_service.is_available = False

        with pytest.raises(InvalidOperationException):
            cache_service.get_or_extract_datasheet(DATASHEET_URL)
        assert session.query(DatasheetCacheEntry).count() == 0

    def test_ai_disabled_still_serves_hits(self, cache_service, session, llm_extraction_service):
        _add_entry(
            session,
            CacheStatus.COMPLETED,
            pinouts_by_package={"SOIC-8": {"pins": [], "aliases": [], "suffix_hints": []}},
            specs={},
        )
        llm_extraction_service.is_available = False

        extraction = cache_service.get_or_extract_datasheet(DATASHEET_URL)

        assert extraction is not None
        assert list(extraction.pinouts_by_package) == ["SOIC-8"]


class TestCacheAdministration:
    """Test cases for stats, listing, re-extraction and cleanup."""

    def test_stats(self, cache_service, session):
        _add_entry(session, CacheStatus.COMPLETED, url="https://a/1.pdf", extraction_tokens=100, extraction_cost=0.5)
        _add_entry(session, CacheStatus.COMPLETED, url="https://a/2.pdf", extraction_tokens=50, extraction_cost=0.25)
        _add_entry(session, CacheStatus.FAILED, url="https://a/3.pdf", extraction_tokens=999)
        _add_entry(session, CacheStatus.PROCESSING, url="https://a/4.pdf")

        stats = cache_service.get_stats()

        assert stats.total == 4
        assert stats.completed == 2
        assert stats.failed == 1
        assert stats.processing == 1
        assert stats.pending == 0
        assert stats.total_tokens == 150
        assert stats.total_cost == pytest.approx(0.75)

    def test_list_entries_filters_and_pages(self, cache_service, session):
        for index in range(5):
            _add_entry(session, CacheStatus.COMPLETED, url=f"https://a/{index}.pdf")
        _add_entry(session, CacheStatus.FAILED, url="https://a/failed.pdf")

        entries, total = cache_service.list_entries(status=CacheStatus.COMPLETED, page=2, page_size=2)

        assert total == 5
        assert len(entries) == 2
        assert all(entry.status == CacheStatus.COMPLETED for entry in entries)

    def test_reextract_replaces_result(self, cache_service, session, llm_extraction_service):
        entry = _add_entry(
            session,
            CacheStatus.FAILED,
            error_message="timeout",
        )
        component, _ = ComponentService(session).upsert_component(
            "AZ1117CH-3.3TRG1", "Diodes Inc", datasheet_cache_id=entry.id
        )
        session.commit()

        refreshed = cache_service.reextract(entry.id)

        assert refreshed.status == CacheStatus.COMPLETED
        assert refreshed.error_message is None
        assert set(refreshed.pinouts_by_package) == {"SOT-223", "TO-252"}
        llm_extraction_service.extract_packages.assert_called_once_with(DATASHEET_TEXT, component.mpn)

    def test_reextract_refuses_running_entry(self, cache_service, session):
        entry = _add_entry(session, CacheStatus.PROCESSING)

        with pytest.raises(InvalidOperationException):
            cache_service.reextract(entry.id)

    def test_get_components(self, cache_service, session):
        entry = _add_entry(session, CacheStatus.COMPLETED)
        component_service = ComponentService(session)
        component_service.upsert_component("AZ1117CH-3.3TRG1", "Diodes Inc", datasheet_cache_id=entry.id)
        component_service.upsert_component("AZ1117CD-3.3TRG1", "Diodes Inc", datasheet_cache_id=entry.id)
        component_service.upsert_component("LM317T", "TI")
        session.commit()

        components = cache_service.get_components(entry.id)

        assert [component.mpn for component in components] == ["AZ1117CD-3.3TRG1", "AZ1117CH-3.3TRG1"]

    def test_clear_expired_detaches_components(self, cache_service, session):
        expired = _add_entry(
            session, CacheStatus.COMPLETED, url="https://a/old.pdf", expires_at=utc_now() - timedelta(days=1)
        )
        fresh = _add_entry(session, CacheStatus.COMPLETED, url="https://a/new.pdf")
        component, _ = ComponentService(session).upsert_component(
            "AZ1117CH-3.3TRG1", "Diodes Inc", datasheet_cache_id=expired.id
        )
        session.commit()

        assert cache_service.clear_expired() == 1
        session.commit()

        assert session.get(DatasheetCacheEntry, fresh.id) is not None
        assert session.get(DatasheetCacheEntry, expired.id) is None
        assert session.get(Component, component.id).datasheet_cache_id is None

    def test_clear_failed(self, cache_service, session):
        _add_entry(session, CacheStatus.FAILED, url="https://a/1.pdf")
        _add_entry(session, CacheStatus.COMPLETED, url="https://a/2.pdf")

        assert cache_service.clear_failed() == 1
        assert cache_service.clear_failed() == 0
