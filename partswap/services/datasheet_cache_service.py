"""Fetch-once, extract-once datasheet cache shared by all variants of a part family."""

import logging
from datetime import datetime, timedelta

from prometheus_client import Counter
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from partswap.exceptions import InvalidOperationException, RecordNotFoundException
from partswap.models.component import Component
from partswap.models.datasheet_cache import CacheStatus, DatasheetCacheEntry, utc_now
from partswap.schemas.datasheet_cache import CacheStatsSchema
from partswap.schemas.extraction import DatasheetExtraction, PackagePinout
from partswap.services.base import BaseService
from partswap.services.llm_extraction_service import LLMExtractionService
from partswap.services.pdf_text_service import PdfTextService
from partswap.utils.pinout_matching import normalize_datasheet_url

logger = logging.getLogger(__name__)

DATASHEET_CACHE_LOOKUPS_TOTAL = Counter(
    "datasheet_cache_lookups_total",
    "Datasheet cache lookups by outcome",
    ["outcome"],
)


class DatasheetCacheService(BaseService):
    """Owns the ``datasheet_cache`` table and its per-URL state machine.

    absent -> processing -> completed | failed. State transitions are
    committed right away so concurrent workers observe a ``processing`` row;
    call this outside of a unit of work that must stay uncommitted.
    """

    def __init__(
        self,
        db: Session,
        pdf_text_service: PdfTextService,
        llm_extraction_service: LLMExtractionService,
        ttl_days: int = 30,
        raw_text_limit: int = 50000,
    ):
        super().__init__(db)
        self.pdf_text_service = pdf_text_service
        self.llm_extraction_service = llm_extraction_service
        self.ttl = timedelta(days=ttl_days)
        self.raw_text_limit = raw_text_limit

    def get_or_extract_datasheet(self, url: str | None, mpn_hint: str | None = None) -> DatasheetExtraction | None:
        """Return the extraction for ``url``, running it if nobody has yet.

        Returns None when another worker owns the extraction, when a previous
        extraction failed, or when this extraction fails.
        """
        if not url:
            return None

        cache_key = normalize_datasheet_url(url)

        entry = self._get_by_key(cache_key)
        if entry is not None:
            match entry.status:
                case CacheStatus.COMPLETED:
                    logger.info(f"Datasheet cache HIT for {cache_key[:80]}")
                    DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="hit").inc()
                    return self.to_extraction(entry)
                case CacheStatus.PROCESSING:
                    logger.info(f"Datasheet {cache_key[:80]} is already being extracted, skipping")
                    DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="processing").inc()
                    return None
                case CacheStatus.FAILED:
                    logger.info(f"Datasheet {cache_key[:80]} failed before ({entry.error_message}), skipping")
                    DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="failed").inc()
                    return None
                case CacheStatus.PENDING:
                    if not self._claim(entry.id):
                        logger.info(f"Datasheet {cache_key[:80]} was claimed by another worker, skipping")
                        DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="race").inc()
                        return None
                    return self._extract(entry.id, url, mpn_hint)

        if not self.llm_extraction_service.is_available:
            raise InvalidOperationException("extract datasheet", "AI extraction is disabled")

        entry_id = self._insert_processing(cache_key)
        if entry_id is None:
            return None

        return self._extract(entry_id, url, mpn_hint)

    def get_entry(self, entry_id: int) -> DatasheetCacheEntry:
        entry = self.db.get(DatasheetCacheEntry, entry_id)
        if entry is None:
            raise RecordNotFoundException("Datasheet cache entry", entry_id)
        return entry

    def get_entry_by_url(self, url: str) -> DatasheetCacheEntry | None:
        return self._get_by_key(normalize_datasheet_url(url))

    def get_stats(self) -> CacheStatsSchema:
        rows = self.db.execute(
            select(DatasheetCacheEntry.status, func.count(DatasheetCacheEntry.id))
            .group_by(DatasheetCacheEntry.status)
        ).all()
        counts = {status: count for status, count in rows}

        tokens, cost = self.db.execute(
            select(
                func.coalesce(func.sum(DatasheetCacheEntry.extraction_tokens), 0),
                func.coalesce(func.sum(DatasheetCacheEntry.extraction_cost), 0.0),
            ).where(DatasheetCacheEntry.status == CacheStatus.COMPLETED)
        ).one()

        return CacheStatsSchema(
            total=sum(counts.values()),
            completed=counts.get(CacheStatus.COMPLETED, 0),
            failed=counts.get(CacheStatus.FAILED, 0),
            processing=counts.get(CacheStatus.PROCESSING, 0),
            pending=counts.get(CacheStatus.PENDING, 0),
            total_tokens=int(tokens),
            total_cost=float(cost),
        )

    def list_entries(
        self, status: CacheStatus | None = None, page: int = 1, page_size: int = 25
    ) -> tuple[list[DatasheetCacheEntry], int]:
        stmt = select(DatasheetCacheEntry)
        count_stmt = select(func.count(DatasheetCacheEntry.id))
        if status is not None:
            stmt = stmt.where(DatasheetCacheEntry.status == status)
            count_stmt = count_stmt.where(DatasheetCacheEntry.status == status)

        stmt = (
            stmt.order_by(DatasheetCacheEntry.created_at.desc(), DatasheetCacheEntry.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        entries = list(self.db.execute(stmt).scalars().all())
        total = self.db.execute(count_stmt).scalar_one()
        return entries, total

    def get_components(self, entry_id: int) -> list[Component]:
        self.get_entry(entry_id)
        stmt = (
            select(Component)
            .where(Component.datasheet_cache_id == entry_id)
            .order_by(Component.mpn)
        )
        return list(self.db.execute(stmt).scalars().all())

    def reextract(self, entry_id: int, mpn_hint: str | None = None) -> DatasheetCacheEntry:
        """Throw away an entry's result and run the extraction again."""
        entry = self.get_entry(entry_id)
        if entry.status == CacheStatus.PROCESSING:
            raise InvalidOperationException("re-extract datasheet", "an extraction is already running")
        if not self.llm_extraction_service.is_available:
            raise InvalidOperationException("re-extract datasheet", "AI extraction is disabled")

        if mpn_hint is None:
            mpn_hint = self.db.execute(
                select(Component.mpn).where(Component.datasheet_cache_id == entry_id).order_by(Component.id).limit(1)
            ).scalar_one_or_none()

        entry.status = CacheStatus.PENDING
        entry.raw_text = None
        entry.page_count = None
        entry.text_length = None
        entry.pinouts_by_package = None
        entry.specs = None
        entry.extraction_model = None
        entry.extraction_tokens = None
        entry.extraction_cost = None
        entry.error_message = None
        self.db.commit()

        logger.info(f"Re-extracting datasheet cache entry {entry_id}")
        if self._claim(entry_id):
            self._extract(entry_id, entry.datasheet_url, mpn_hint)

        self.db.refresh(entry)
        return entry

    def delete_entry(self, entry_id: int) -> None:
        self.get_entry(entry_id)
        self._detach_components([entry_id])
        self.db.execute(delete(DatasheetCacheEntry).where(DatasheetCacheEntry.id == entry_id))
        self.db.expire_all()
        logger.info(f"Deleted datasheet cache entry {entry_id}")

    def clear_expired(self, now: datetime | None = None) -> int:
        now = now or utc_now()
        ids = list(self.db.execute(
            select(DatasheetCacheEntry.id).where(DatasheetCacheEntry.expires_at < now)
        ).scalars().all())
        return self._delete_entries(ids, "expired")

    def clear_failed(self) -> int:
        ids = list(self.db.execute(
            select(DatasheetCacheEntry.id).where(DatasheetCacheEntry.status == CacheStatus.FAILED)
        ).scalars().all())
        return self._delete_entries(ids, "failed")

    @staticmethod
    def to_extraction(entry: DatasheetCacheEntry) -> DatasheetExtraction:
        return DatasheetExtraction(
            id=entry.id,
            pinouts_by_package={
                name: PackagePinout.model_validate(pinout)
                for name, pinout in (entry.pinouts_by_package or {}).items()
            },
            specs=entry.specs or {},
            page_count=entry.page_count or 0,
            text_length=entry.text_length or 0,
        )

    def _get_by_key(self, cache_key: str) -> DatasheetCacheEntry | None:
        return self.db.execute(
            select(DatasheetCacheEntry).where(DatasheetCacheEntry.datasheet_url == cache_key)
        ).scalar_one_or_none()

    def _insert_processing(self, cache_key: str) -> int | None:
        entry = DatasheetCacheEntry(
            datasheet_url=cache_key,
            status=CacheStatus.PROCESSING,
            expires_at=utc_now() + self.ttl,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost the insert race; the winner owns the extraction
            self.db.rollback()
            logger.info(f"Datasheet cache entry for {cache_key[:80]} created concurrently, skipping")
            DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="race").inc()
            return None

        DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="miss").inc()
        return entry.id

    def _claim(self, entry_id: int) -> bool:
        """Atomically move a pending entry to processing."""
        result = self.db.execute(
            update(DatasheetCacheEntry)
            .where(DatasheetCacheEntry.id == entry_id, DatasheetCacheEntry.status == CacheStatus.PENDING)
            .values(status=CacheStatus.PROCESSING, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        claimed = result.rowcount == 1
        if claimed:
            DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="miss").inc()
        return claimed

    def _extract(self, entry_id: int, url: str, mpn_hint: str | None) -> DatasheetExtraction | None:
        logger.info(f"Datasheet cache MISS, extracting {url[:80]}")

        try:
            pdf = self.pdf_text_service.extract_from_url(url)
            result = self.llm_extraction_service.extract_packages(pdf.text, mpn_hint)
        except Exception as e:
            logger.error(f"Datasheet extraction failed for {url[:80]}: {e}", exc_info=True)
            self._mark_failed(entry_id, str(e) or type(e).__name__)
            return None

        entry = self.db.get(DatasheetCacheEntry, entry_id)
        if entry is None:
            logger.warning(f"Datasheet cache entry {entry_id} disappeared during extraction")
            return None

        entry.status = CacheStatus.COMPLETED
        entry.raw_text = pdf.text[:self.raw_text_limit]
        entry.text_length = len(pdf.text)
        entry.page_count = pdf.page_count
        entry.pinouts_by_package = {
            name: pinout.model_dump() for name, pinout in result.pinouts_by_package.items()
        }
        entry.specs = result.specs
        entry.extraction_model = result.model
        entry.extraction_tokens = result.tokens
        entry.extraction_cost = result.cost
        entry.error_message = None
        entry.expires_at = utc_now() + self.ttl
        self.db.commit()

        logger.info(f"Extracted {len(result.pinouts_by_package)} package variants from {url[:80]}")
        return self.to_extraction(entry)

    def _mark_failed(self, entry_id: int, message: str) -> None:
        self.db.rollback()
        entry = self.db.get(DatasheetCacheEntry, entry_id)
        if entry is None:
            return
        entry.status = CacheStatus.FAILED
        entry.error_message = message[:2000]
        self.db.commit()
        DATASHEET_CACHE_LOOKUPS_TOTAL.labels(outcome="failed").inc()

    def _detach_components(self, entry_ids: list[int]) -> None:
        self.db.execute(
            update(Component)
            .where(Component.datasheet_cache_id.in_(entry_ids))
            .values(datasheet_cache_id=None)
            .execution_options(synchronize_session=False)
        )

    def _delete_entries(self, entry_ids: list[int], reason: str) -> int:
        if not entry_ids:
            return 0
        self._detach_components(entry_ids)
        self.db.execute(delete(DatasheetCacheEntry).where(DatasheetCacheEntry.id.in_(entry_ids)))
        self.db.expire_all()
        logger.info(f"Cleared {len(entry_ids)} {reason} datasheet cache entries")
        return len(entry_ids)
