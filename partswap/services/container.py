"""Dependency injection container for services."""

from collections.abc import Mapping, Sequence

from dependency_injector import containers, providers
from sqlalchemy.orm import sessionmaker

from partswap.config import Settings
from partswap.services.component_service import ComponentService
from partswap.services.datasheet_cache_service import DatasheetCacheService
from partswap.services.ingestion_service import IngestionService
from partswap.services.llm_extraction_service import LLMExtractionService
from partswap.services.part_sources.base import PartSource
from partswap.services.part_sources.digikey import DigiKeyPartSource, DigiKeySession
from partswap.services.part_sources.mouser import MouserPartSource
from partswap.services.pdf_text_service import PdfTextService
from partswap.services.prompt_service import PromptService
from partswap.services.replacement_service import ReplacementService
from partswap.services.task_service import TaskService
from partswap.utils.ai.ai_runner import AIRunner
from partswap.utils.ai.openai_runner import OpenAIRunner
from partswap.utils.ttl_cache import TTLCache


def build_ai_runner(config: Settings) -> AIRunner | None:
    """OpenAI runner, or None when real AI calls are not allowed."""
    if not config.real_ai_allowed:
        return None
    return OpenAIRunner(config.OPENAI_API_KEY)


def select_part_sources(order: Sequence[str], available: Mapping[str, PartSource]) -> list[PartSource]:
    """Part sources in configured priority order; unknown names are rejected."""
    unknown = [name for name in order if name not in available]
    if unknown:
        raise ValueError(f"Unknown part sources in PART_SOURCES: {unknown}")
    return [available[name] for name in order]


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    # Configuration and database session providers
    config = providers.Dependency(instance_of=Settings)
    session_maker = providers.Dependency(instance_of=sessionmaker)
    db_session = providers.ContextLocalSingleton(
        session_maker.provided.call()
    )

    # Process-wide clients
    ai_runner = providers.Singleton(build_ai_runner, config=config)
    prompt_cache = providers.Singleton(
        TTLCache,
        ttl_seconds=config.provided.PROMPT_CACHE_TTL_SECONDS,
    )
    digikey_session = providers.Singleton(
        DigiKeySession,
        client_id=config.provided.DIGIKEY_CLIENT_ID,
        client_secret=config.provided.DIGIKEY_CLIENT_SECRET,
        timeout=config.provided.VENDOR_REQUEST_TIMEOUT,
    )

    # Vendor part sources
    digikey_part_source = providers.Singleton(
        DigiKeyPartSource,
        session=digikey_session,
        timeout=config.provided.VENDOR_REQUEST_TIMEOUT,
    )
    mouser_part_source = providers.Singleton(
        MouserPartSource,
        api_key=config.provided.MOUSER_SEARCH_API_KEY,
        timeout=config.provided.VENDOR_REQUEST_TIMEOUT,
    )
    part_sources = providers.Callable(
        select_part_sources,
        order=config.provided.PART_SOURCES,
        available=providers.Dict(
            digikey=digikey_part_source,
            mouser=mouser_part_source,
        ),
    )

    # Service providers - Factory creates new instances for each request
    component_service = providers.Factory(ComponentService, db=db_session)
    prompt_service = providers.Factory(PromptService, db=db_session, cache=prompt_cache)
    pdf_text_service = providers.Factory(
        PdfTextService,
        max_download_size=config.provided.MAX_DATASHEET_SIZE,
        download_timeout=config.provided.DATASHEET_DOWNLOAD_TIMEOUT,
    )
    llm_extraction_service = providers.Factory(
        LLMExtractionService,
        config=config,
        ai_runner=ai_runner,
        prompt_service=prompt_service,
    )
    datasheet_cache_service = providers.Factory(
        DatasheetCacheService,
        db=db_session,
        pdf_text_service=pdf_text_service,
        llm_extraction_service=llm_extraction_service,
        ttl_days=config.provided.DATASHEET_CACHE_TTL_DAYS,
        raw_text_limit=config.provided.DATASHEET_RAW_TEXT_LIMIT,
    )
    replacement_service = providers.Factory(
        ReplacementService,
        db=db_session,
        component_service=component_service,
    )
    ingestion_service = providers.Factory(
        IngestionService,
        db=db_session,
        component_service=component_service,
        datasheet_cache_service=datasheet_cache_service,
        pdf_text_service=pdf_text_service,
        llm_extraction_service=llm_extraction_service,
        part_sources=part_sources,
        item_delay=config.provided.INGESTION_ITEM_DELAY_SECONDS,
        error_limit=config.provided.INGESTION_ERROR_LIMIT,
    )

    # TaskService - Singleton for in-memory task management with configurable settings
    task_service = providers.Singleton(
        TaskService,
        max_workers=config.provided.TASK_MAX_WORKERS,
        task_timeout=config.provided.TASK_TIMEOUT_SECONDS,
        cleanup_interval=config.provided.TASK_CLEANUP_INTERVAL_SECONDS,
    )
