"""Background tasks wrapping batch and family imports."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from partswap.schemas.ingestion import FamilyImportSummary, ImportSummary
from partswap.services.base_task import BaseSessionTask, ProgressHandle
from partswap.services.container import ServiceContainer

logger = logging.getLogger(__name__)


def _progress_reporter(progress_handle: ProgressHandle):
    def report(processed: int, total: int, text: str) -> None:
        value = processed / total if total else 1.0
        progress_handle.send_progress(f"{text} ({processed}/{total})", value)

    return report


class ImportPartsTask(BaseSessionTask):
    """Imports a list of MPNs, one at a time."""

    def __init__(self, container: ServiceContainer):
        super().__init__(container)

    def execute_session(self, session: Session, progress_handle: ProgressHandle, **kwargs: Any) -> ImportSummary:
        """
        Args:
            session: Database session
            progress_handle: Interface for sending progress updates
            **kwargs: Task parameters including:
                - mpns: MPNs to import, in order
                - extract_pinouts: run datasheet extraction
                - skip_existing: skip MPNs already stored
        """
        mpns: list[str] = list(kwargs.get("mpns") or [])
        logger.info(f"Import task started for {len(mpns)} MPNs")
        progress_handle.send_progress(f"Importing {len(mpns)} parts", 0.0)

        ingestion_service = self.container.ingestion_service()
        return ingestion_service.import_parts_batch(
            mpns,
            extract_pinouts=kwargs.get("extract_pinouts", True),
            skip_existing=kwargs.get("skip_existing", True),
            progress=_progress_reporter(progress_handle),
            is_cancelled=lambda: self.is_cancelled,
        )


class ImportFamilyTask(BaseSessionTask):
    """Discovers the catalog variants of a base MPN and imports each."""

    def __init__(self, container: ServiceContainer):
        super().__init__(container)

    def execute_session(self, session: Session, progress_handle: ProgressHandle, **kwargs: Any) -> FamilyImportSummary:
        base_mpn: str = kwargs["base_mpn"]
        logger.info(f"Family import task started for {base_mpn}")
        progress_handle.send_progress(f"Searching variants of {base_mpn}", 0.0)

        ingestion_service = self.container.ingestion_service()
        return ingestion_service.import_part_family(
            base_mpn,
            extract_pinouts=kwargs.get("extract_pinouts", True),
            skip_existing=kwargs.get("skip_existing", True),
            limit=kwargs.get("limit", 100),
            progress=_progress_reporter(progress_handle),
            is_cancelled=lambda: self.is_cancelled,
        )
