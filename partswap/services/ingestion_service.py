"""Import parts from vendor catalogs and their datasheets into the component database."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from prometheus_client import Counter
from sqlalchemy.orm import Session

from partswap.exceptions import BusinessLogicException, UpstreamUnavailableException
from partswap.models.component import PinoutSource
from partswap.schemas.extraction import ExtractedPin
from partswap.schemas.ingestion import FamilyImportSummary, ImportResult, ImportSummary
from partswap.schemas.vendor import VendorPart
from partswap.services.base import BaseService
from partswap.services.component_service import ComponentService
from partswap.services.datasheet_cache_service import DatasheetCacheService
from partswap.services.llm_extraction_service import LLMExtractionService
from partswap.services.part_sources.base import PartSource
from partswap.services.pdf_text_service import PdfTextService
from partswap.utils.package_normalizer import (
    extract_pin_count,
    get_mounting_style,
    normalize_lifecycle,
    normalize_package,
)
from partswap.utils.pinout_matching import extract_mpn_suffix, match_pinout_to_component

logger = logging.getLogger(__name__)

PART_IMPORTS_TOTAL = Counter(
    "part_imports_total",
    "Single-part imports by outcome",
    ["outcome"],
)

SKIPPED_EXISTING = "Skipped - already exists"
DEFAULT_PIN_CONFIDENCE = 0.8
# pins taken from an unmatched package variant
FALLBACK_PIN_CONFIDENCE = 0.5
PDF_SOURCE = "pdf"

ProgressCallback = Callable[[int, int, str], None]
CancelCheck = Callable[[], bool]


def calculate_confidence(data_sources: Sequence[str], pinout_count: int, fallback_match: bool = False) -> float:
    """0.5 base, +0.2 per vendor source, +0.1 when the datasheet yielded pins; capped at 1.

    Pins from a fallback package match earn no datasheet bonus.
    """
    score = 0.5
    score += 0.2 * sum(1 for source in data_sources if source not in (PDF_SOURCE, "manual"))
    if PDF_SOURCE in data_sources and pinout_count > 0 and not fallback_match:
        score += 0.1
    return min(round(score, 4), 1.0)


class _DatasheetData:
    """What the datasheet contributed to one import."""

    def __init__(self) -> None:
        self.pins: list[ExtractedPin] = []
        self.specs: dict[str, Any] = {}
        self.pinout_source: PinoutSource | None = None
        self.datasheet_cache_id: int | None = None
        self.fallback_match = False


class IngestionService(BaseService):
    """Coordinates vendor lookups, datasheet extraction and persistence per MPN.

    Batches run strictly sequentially with a fixed pause between items; each
    item is committed on its own so one failure never undoes another.
    """

    def __init__(
        self,
        db: Session,
        component_service: ComponentService,
        datasheet_cache_service: DatasheetCacheService,
        pdf_text_service: PdfTextService,
        llm_extraction_service: LLMExtractionService,
        part_sources: Sequence[PartSource],
        item_delay: float = 0.5,
        error_limit: int = 100,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(db)
        self.component_service = component_service
        self.datasheet_cache_service = datasheet_cache_service
        self.pdf_text_service = pdf_text_service
        self.llm_extraction_service = llm_extraction_service
        self.part_sources = list(part_sources)
        self.item_delay = item_delay
        self.error_limit = error_limit
        self._sleep = sleep

    def import_part_by_mpn(
        self,
        mpn: str,
        extract_pinouts: bool = True,
        skip_existing: bool = True,
    ) -> ImportResult:
        """Import one MPN.

        Vendor and datasheet problems end up in ``ImportResult.error``;
        persistence errors propagate.
        """
        mpn = mpn.strip()
        result = ImportResult(mpn=mpn)

        if skip_existing and self.component_service.exists_by_mpn(mpn):
            logger.info(f"Skipping {mpn} - already exists")
            PART_IMPORTS_TOTAL.labels(outcome="skipped").inc()
            result.success = True
            result.skipped = True
            result.error = SKIPPED_EXISTING
            return result

        logger.info(f"Starting import for MPN: {mpn}")

        vendor_part, lookup_errors = self.lookup_part(mpn)
        if vendor_part is None:
            result.error = f"Part {mpn} not found in any API source"
            if lookup_errors:
                result.error += f" ({'; '.join(lookup_errors)})"
            PART_IMPORTS_TOTAL.labels(outcome="not_found").inc()
            return result

        result.data_sources.append(vendor_part.source)

        package_normalized = normalize_package(vendor_part.package_raw)
        mpn_suffix = extract_mpn_suffix(vendor_part.mpn)
        specs = dict(vendor_part.specs)

        datasheet = _DatasheetData()
        if extract_pinouts and vendor_part.datasheet_url:
            if self.llm_extraction_service.is_available:
                datasheet = self._extract_from_datasheet(
                    vendor_part, vendor_part.datasheet_url, package_normalized, mpn_suffix, specs
                )
            else:
                logger.warning(f"AI extraction is disabled, importing {mpn} without a pinout")

        if not specs and datasheet.specs:
            specs = dict(datasheet.specs)
        if datasheet.pins:
            result.data_sources.append(PDF_SOURCE)

        pin_count = extract_pin_count(package_normalized)
        if datasheet.pins:
            pin_count = max(pin.pin_number for pin in datasheet.pins)

        logger.info(
            f'Package for {vendor_part.mpn}: raw="{vendor_part.package_raw}" '
            f'normalized="{package_normalized}" source="{vendor_part.package_source}" suffix="{mpn_suffix}"'
        )

        component, created = self.component_service.upsert_component(
            vendor_part.mpn,
            vendor_part.manufacturer,
            description=vendor_part.description,
            datasheet_url=vendor_part.datasheet_url,
            lifecycle_status=normalize_lifecycle(vendor_part.lifecycle_status),
            package_raw=vendor_part.package_raw,
            package_normalized=package_normalized,
            package_source=vendor_part.package_source,
            pin_count=pin_count,
            mounting_style=get_mounting_style(package_normalized),
            specs=specs,
            data_sources=list(result.data_sources),
            confidence_score=calculate_confidence(
                result.data_sources, len(datasheet.pins), fallback_match=datasheet.fallback_match
            ),
            datasheet_cache_id=datasheet.datasheet_cache_id,
            mpn_suffix=mpn_suffix,
            pinout_source=datasheet.pinout_source,
        )

        if datasheet.pins:
            pin_confidence = FALLBACK_PIN_CONFIDENCE if datasheet.fallback_match else DEFAULT_PIN_CONFIDENCE
            result.pinouts_extracted = self.component_service.replace_pinouts(
                component, datasheet.pins, source=PDF_SOURCE, default_confidence=pin_confidence
            )

        result.success = True
        result.component_id = component.id
        result.created = created
        PART_IMPORTS_TOTAL.labels(outcome="created" if created else "updated").inc()
        logger.info(f"Import complete for {mpn} ({result.pinouts_extracted} pins)")
        return result

    def lookup_part(self, mpn: str) -> tuple[VendorPart | None, list[str]]:
        """First configured source that knows ``mpn`` wins; errors fall through to the next."""
        errors: list[str] = []
        for source in self.part_sources:
            if not source.is_configured:
                logger.debug(f"Part source {source.name} is not configured, skipping")
                continue
            try:
                logger.info(f"Looking up {mpn} on {source.name}")
                part = source.lookup(mpn)
            except UpstreamUnavailableException as e:
                logger.warning(f"{source.name} lookup failed for {mpn}: {e}")
                errors.append(e.message)
                continue
            if part is not None:
                logger.info(f"Found {mpn} on {source.name}: {part.manufacturer}")
                return part, errors
        return None, errors

    def find_family_variants(self, base_mpn: str, limit: int = 100) -> list[str]:
        """MPNs from a keyword search that start with ``base_mpn``, deduplicated case-insensitively.

        Raises:
            UpstreamUnavailableException: When every configured source failed.
        """
        base = base_mpn.strip().upper()
        last_error: UpstreamUnavailableException | None = None

        for source in self.part_sources:
            if not source.is_configured:
                continue
            try:
                parts = source.search(base_mpn.strip(), limit=limit)
            except UpstreamUnavailableException as e:
                logger.warning(f"{source.name} family search failed for {base_mpn}: {e}")
                last_error = e
                continue

            seen: set[str] = set()
            variants: list[str] = []
            for part in parts:
                mpn = part.mpn.strip()
                key = mpn.upper()
                if mpn and key.startswith(base) and key not in seen:
                    seen.add(key)
                    variants.append(mpn)

            if variants:
                logger.info(f"Found {len(variants)} variants for {base_mpn} on {source.name}")
                return variants

        if last_error is not None:
            raise last_error
        return []

    def import_parts_batch(
        self,
        mpns: Sequence[str],
        extract_pinouts: bool = True,
        skip_existing: bool = True,
        progress: ProgressCallback | None = None,
        is_cancelled: CancelCheck | None = None,
    ) -> ImportSummary:
        """Import MPNs one after another, committing after each item."""
        summary = ImportSummary(total=len(mpns))

        for index, result in enumerate(
            self._import_sequentially(mpns, extract_pinouts, skip_existing, progress, is_cancelled)
        ):
            summary.processed = index + 1
            if result.skipped:
                summary.skipped += 1
            elif result.success and result.created:
                summary.added += 1
            elif result.success:
                summary.updated += 1
            else:
                summary.failed += 1
                self._append_error(summary.errors, f"{result.mpn}: {result.error or 'Import failed'}")
            summary.pinouts_extracted += result.pinouts_extracted

        summary.cancelled = summary.processed < summary.total and is_cancelled is not None and is_cancelled()
        logger.info(
            f"Batch import finished: {summary.added} added, {summary.updated} updated, "
            f"{summary.skipped} skipped, {summary.failed} failed of {summary.total}"
        )
        return summary

    def import_part_family(
        self,
        base_mpn: str,
        extract_pinouts: bool = True,
        skip_existing: bool = True,
        limit: int = 100,
        progress: ProgressCallback | None = None,
        is_cancelled: CancelCheck | None = None,
    ) -> FamilyImportSummary:
        """Discover the variants of a part family and import each of them."""
        summary = FamilyImportSummary(base_mpn=base_mpn)

        logger.info(f"Searching for variants of: {base_mpn}")
        try:
            variants = self.find_family_variants(base_mpn, limit=limit)
        except UpstreamUnavailableException as e:
            summary.errors.append(e.message)
            return summary

        if not variants:
            summary.errors.append(f"No variants found for {base_mpn}")
            return summary

        summary.variants_found = len(variants)
        summary.variants = variants

        processed = 0
        for result in self._import_sequentially(variants, extract_pinouts, skip_existing, progress, is_cancelled):
            processed += 1
            if result.skipped:
                summary.skipped += 1
            elif result.success:
                summary.imported += 1
            else:
                self._append_error(summary.errors, f"{result.mpn}: {result.error or 'Import failed'}")

        summary.cancelled = processed < len(variants)
        logger.info(f"Family import complete: {summary.imported}/{summary.variants_found} imported")
        return summary

    def _import_sequentially(
        self,
        mpns: Sequence[str],
        extract_pinouts: bool,
        skip_existing: bool,
        progress: ProgressCallback | None,
        is_cancelled: CancelCheck | None,
    ):
        total = len(mpns)
        for index, mpn in enumerate(mpns):
            if is_cancelled is not None and is_cancelled():
                logger.info(f"Import cancelled after {index} of {total} items")
                return

            if index > 0 and self.item_delay > 0:
                self._sleep(self.item_delay)

            if progress is not None:
                progress(index, total, f"Importing {mpn}")

            try:
                result = self.import_part_by_mpn(mpn, extract_pinouts=extract_pinouts, skip_existing=skip_existing)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.warning(f"Import failed for {mpn}: {e}", exc_info=True)
                result = ImportResult(mpn=mpn, error=str(e))

            if progress is not None:
                progress(index + 1, total, f"Processed {mpn}")

            yield result

    def _append_error(self, errors: list[str], message: str) -> None:
        if len(errors) < self.error_limit:
            errors.append(message)

    def _extract_from_datasheet(
        self,
        vendor_part: VendorPart,
        url: str,
        package_normalized: str | None,
        mpn_suffix: str | None,
        vendor_specs: dict[str, Any],
    ) -> _DatasheetData:
        """Pins and specs for one component: shared cache first, then direct extraction.

        Datasheet problems are logged and produce an empty result; the
        component is still stored with its vendor data.
        """
        data = _DatasheetData()

        try:
            logger.info(f"Checking datasheet cache for: {url[:60]}...")
            extraction = self.datasheet_cache_service.get_or_extract_datasheet(url, vendor_part.mpn)

            if extraction is not None:
                data.datasheet_cache_id = extraction.id
                logger.info(f"Found {len(extraction.pinouts_by_package)} package variants in cache")

                match = match_pinout_to_component(extraction, package_normalized, mpn_suffix)
                if match is not None and match.pinout.pins:
                    data.pins = list(match.pinout.pins)
                    data.pinout_source = PinoutSource.DATASHEET_CACHE
                    if match.is_fallback:
                        data.fallback_match = True
                        data.pins = [
                            pin.model_copy(update={"confidence": FALLBACK_PIN_CONFIDENCE})
                            if pin.confidence is None or pin.confidence > FALLBACK_PIN_CONFIDENCE
                            else pin
                            for pin in data.pins
                        ]
                    logger.info(
                        f"Matched {len(data.pins)} pins from cache via {match.strategy.value} ({match.package_name})"
                    )

                if not vendor_specs and extraction.specs:
                    data.specs = dict(extraction.specs)

            if not data.pins:
                logger.info("Cache miss or no match, falling back to direct extraction")
                pdf_text = self.pdf_text_service.extract_from_url(url)
                logger.info(f"PDF extracted: {pdf_text.page_count} pages, {len(pdf_text.text)} chars")

                data.pins = self.llm_extraction_service.extract_pinouts(
                    pdf_text.text, vendor_part.mpn, package_normalized or vendor_part.package_raw
                )
                if data.pins:
                    data.pinout_source = PinoutSource.DIRECT_EXTRACTION
                logger.info(f"Extracted {len(data.pins)} pins directly")

                if not vendor_specs and not data.specs:
                    data.specs = self.llm_extraction_service.extract_specs(pdf_text.text, vendor_part.mpn)
        except BusinessLogicException as e:
            logger.warning(f"Datasheet extraction failed for {vendor_part.mpn}: {e}")
        except Exception as e:
            logger.warning(f"Datasheet extraction failed for {vendor_part.mpn}: {e}", exc_info=True)

        return data
