"""Datasheet download and PDF text extraction."""

import io
import logging

import magic
import pdfplumber
import requests
import validators
from prometheus_client import Counter, Histogram

from partswap.exceptions import UpstreamUnavailableException
from partswap.schemas.extraction import PdfText

logger = logging.getLogger(__name__)

DATASHEET_DOWNLOADS_TOTAL = Counter(
    "datasheet_downloads_total",
    "Datasheet PDF downloads by outcome",
    ["status"],
)
DATASHEET_DOWNLOAD_BYTES = Histogram(
    "datasheet_download_bytes",
    "Size of downloaded datasheets",
    buckets=(64_000, 256_000, 1_000_000, 4_000_000, 16_000_000, 64_000_000),
)

PDF_MIME_TYPE = "application/pdf"


class PdfTextService:
    """Fetches a datasheet PDF over HTTP and returns its text and page count."""

    def __init__(self, max_download_size: int = 50 * 1024 * 1024, download_timeout: int = 60):
        """
        Args:
            max_download_size: Maximum download size in bytes
            download_timeout: Download timeout in seconds
        """
        self.max_download_size = max_download_size
        self.download_timeout = download_timeout

    def extract_from_url(self, url: str) -> PdfText:
        """Download ``url`` and extract its text.

        Raises:
            UpstreamUnavailableException: When the download fails, the content
                is not a PDF, or the PDF cannot be parsed
        """
        content = self.download_pdf(url)
        return self.extract_from_bytes(content, url)

    def validate_url(self, url: str) -> bool:
        if not validators.url(url):
            logger.warning(f"URL {url} is invalid")
            return False

        if not url.startswith(('http://', 'https://')):
            logger.warning(f"URL {url} does not start with http:// or https://")
            return False

        return True

    def download_pdf(self, url: str) -> bytes:
        if not url or not self.validate_url(url):
            DATASHEET_DOWNLOADS_TOTAL.labels(status="invalid_url").inc()
            raise UpstreamUnavailableException("Datasheet host", f"invalid URL {url}")

        try:
            response = requests.get(
                url,
                stream=True,
                timeout=self.download_timeout,
                headers={
                    "Accept": "application/pdf,*/*",
                    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/139.0.0.0 Safari/537.36"
                }
            )
            response.raise_for_status()

            content_length = response.headers.get('content-length')
            if content_length and int(content_length) > self.max_download_size:
                raise UpstreamUnavailableException(
                    "Datasheet host",
                    f"content too large: {content_length} bytes (max: {self.max_download_size})",
                )

            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=8192):
                buffer.extend(chunk)
                if len(buffer) > self.max_download_size:
                    raise UpstreamUnavailableException(
                        "Datasheet host",
                        f"content too large: more than {self.max_download_size} bytes",
                    )

        except requests.RequestException as e:
            DATASHEET_DOWNLOADS_TOTAL.labels(status="error").inc()
            logger.warning(f"Failed to download datasheet from {url}: {e}")
            raise UpstreamUnavailableException("Datasheet host", str(e)) from e
        except UpstreamUnavailableException:
            DATASHEET_DOWNLOADS_TOTAL.labels(status="too_large").inc()
            raise

        content = bytes(buffer)
        detected_type = magic.from_buffer(content, mime=True)
        if detected_type != PDF_MIME_TYPE:
            DATASHEET_DOWNLOADS_TOTAL.labels(status="not_pdf").inc()
            raise UpstreamUnavailableException(
                "Datasheet host", f"{url} returned {detected_type}, not a PDF"
            )

        DATASHEET_DOWNLOADS_TOTAL.labels(status="success").inc()
        DATASHEET_DOWNLOAD_BYTES.observe(len(content))
        logger.debug(f"Downloaded {len(content)} bytes from {url}")
        return content

    def extract_from_bytes(self, content: bytes, source: str = "<bytes>") -> PdfText:
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.warning(f"Failed to parse PDF from {source}: {e}")
            raise UpstreamUnavailableException("PDF parser", f"could not read {source}: {e}") from e

        text = "\n\n".join(pages)
        logger.info(f"Extracted {len(text)} characters from {len(pages)} pages of {source}")
        return PdfText(text=text, page_count=len(pages))
