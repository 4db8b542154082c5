"""
Content stores for pulling comparison inputs and pushing rendered artifacts.

The Confluence implementation talks to the REST API with httpx and
authenticates every request with the run's shared credential.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from .models import Credential, FetchResult, PublishResult

logger = logging.getLogger(__name__)

PLAIN_TEXT_BODY = re.compile(r"<ac:plain-text-body>(.*?)</ac:plain-text-body>", re.DOTALL)
CDATA_MARKER = re.compile(r"<!\[CDATA\[|\]\]>")


class StoreError(Exception):
    """Base exception for content store errors."""

    pass


class ContentStore(ABC):
    """
    Abstract interface for content stores.

    Both calls return (result, None) on success or (None, error_message) on
    failure; transport problems are never raised to the caller.
    """

    @abstractmethod
    async def fetch(
        self,
        page_id: str,
        destination: str,
        credential: Credential,
        timeout: float | None = None,
    ) -> tuple[FetchResult | None, str | None]:
        """
        Pull a page into a local file.

        Args:
            page_id: Identifier of the page to pull
            destination: Local path to write
            credential: Credential for the store
            timeout: Timeout in seconds

        Returns:
            Tuple of (FetchResult, None) on success, or (None, error_message) on failure
        """
        pass

    @abstractmethod
    async def publish(
        self,
        page_id: str,
        source: str,
        credential: Credential,
        timeout: float | None = None,
    ) -> tuple[PublishResult | None, str | None]:
        """
        Push a local file to a page.

        Args:
            page_id: Identifier of the page to update
            source: Local file to push
            credential: Credential for the store
            timeout: Timeout in seconds

        Returns:
            Tuple of (PublishResult, None) on success, or (None, error_message) on failure
        """
        pass


def storage_to_text(storage: str) -> str:
    """
    Convert a Confluence storage-format body to plain text.

    Pages holding code or no-format macros give back the macro bodies
    verbatim. Anything else yields the text of each innermost block element
    on its own line.
    """
    # Macro bodies are CDATA, which the HTML parser does not keep
    plain_bodies = PLAIN_TEXT_BODY.findall(storage)
    if plain_bodies:
        text = "\n".join(CDATA_MARKER.sub("", body) for body in plain_bodies)
        return text if text.endswith("\n") else text + "\n"

    soup = BeautifulSoup(storage, "html.parser")

    for br in soup.find_all("br"):
        br.replace_with("\n")

    lines: list[str] = []
    for element in soup.find_all(ConfluenceContentStore.BLOCK_TAGS):
        # Only innermost blocks, so nested text is not repeated
        if element.find(ConfluenceContentStore.BLOCK_TAGS):
            continue
        lines.extend(line.rstrip() for line in element.get_text().splitlines())

    if not lines:
        lines = [line.rstrip() for line in soup.get_text().splitlines()]

    # Trim leading and trailing blank lines
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()

    return "\n".join(lines) + "\n" if lines else ""


def wrap_html_macro(html: str) -> str:
    """Embed an HTML document in a storage-format html macro."""
    # "]]>" cannot appear inside CDATA; split it across two sections
    safe = html.replace("]]>", "]]]]><![CDATA[>")
    return (
        '<ac:structured-macro ac:name="html">'
        f"<ac:plain-text-body><![CDATA[{safe}]]></ac:plain-text-body>"
        "</ac:structured-macro>"
    )


class ConfluenceContentStore(ContentStore):
    """
    Confluence REST API content store.

    fetch() writes a page's text to a local file; publish() replaces a page's
    body with an html macro holding the artifact, bumping its version.
    """

    BLOCK_TAGS = [
        "p",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "li",
        "pre",
        "td",
        "th",
        "div",
        "blockquote",
    ]

    def __init__(
        self,
        base_url: str,
        debug: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Confluence store.

        Args:
            base_url: Confluence base URL, e.g. https://example.atlassian.net/wiki
            debug: Log every request and response
            transport: Custom httpx transport (used by tests)
        """
        if not base_url:
            raise StoreError("A Confluence base URL is required")

        self.base_url = base_url.rstrip("/")
        self.debug = debug
        self.transport = transport

    async def fetch(
        self,
        page_id: str,
        destination: str,
        credential: Credential,
        timeout: float | None = None,
    ) -> tuple[FetchResult | None, str | None]:
        start_time = asyncio.get_running_loop().time()
        logger.info(f'Downloading "{destination}" from confluence page {page_id} ...')

        try:
            async with self._client(credential, timeout) as client:
                response = await client.get(
                    self._content_path(page_id), params={"expand": "body.storage,version"}
                )
                response.raise_for_status()
                data = response.json()

            storage = data.get("body", {}).get("storage", {}).get("value")
            if storage is None:
                return None, f"Page {page_id} has no storage body"

            text = storage_to_text(storage)

            destination_path = Path(destination)
            destination_path.parent.mkdir(parents=True, exist_ok=True)
            destination_path.write_text(text, encoding="utf-8")

            fetch_time_ms = int((asyncio.get_running_loop().time() - start_time) * 1000)

            return (
                FetchResult(
                    page_id=page_id,
                    destination=destination,
                    bytes_written=len(text.encode("utf-8")),
                    fetch_time_ms=fetch_time_ms,
                ),
                None,
            )

        except httpx.TimeoutException:
            return None, f"Timeout after {timeout}s fetching page {page_id}"
        except httpx.HTTPStatusError as e:
            return None, f"HTTP {e.response.status_code} fetching page {page_id}"
        except httpx.HTTPError as e:
            return None, f"HTTP error fetching page {page_id}: {str(e)}"
        except ValueError as e:
            return None, f"Invalid response for page {page_id}: {str(e)}"
        except OSError as e:
            return None, f'Could not write "{destination}": {str(e)}'

    async def publish(
        self,
        page_id: str,
        source: str,
        credential: Credential,
        timeout: float | None = None,
    ) -> tuple[PublishResult | None, str | None]:
        start_time = asyncio.get_running_loop().time()
        logger.info(f'Uploading "{source}" to confluence page {page_id} ...')

        try:
            html = Path(source).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return None, f'Could not read "{source}": {str(e)}'

        try:
            async with self._client(credential, timeout) as client:
                response = await client.get(self._content_path(page_id), params={"expand": "version"})
                response.raise_for_status()
                page = response.json()

                version = page["version"]["number"] + 1
                payload = {
                    "id": page_id,
                    "type": page.get("type", "page"),
                    "title": page["title"],
                    "version": {"number": version},
                    "body": {
                        "storage": {
                            "value": wrap_html_macro(html),
                            "representation": "storage",
                        }
                    },
                }

                response = await client.put(self._content_path(page_id), json=payload)
                response.raise_for_status()

            publish_time_ms = int((asyncio.get_running_loop().time() - start_time) * 1000)

            return (
                PublishResult(
                    page_id=page_id,
                    source=source,
                    version=version,
                    publish_time_ms=publish_time_ms,
                ),
                None,
            )

        except httpx.TimeoutException:
            return None, f"Timeout after {timeout}s publishing page {page_id}"
        except httpx.HTTPStatusError as e:
            return None, f"HTTP {e.response.status_code} publishing page {page_id}"
        except httpx.HTTPError as e:
            return None, f"HTTP error publishing page {page_id}: {str(e)}"
        except (KeyError, TypeError, ValueError) as e:
            return None, f"Invalid response for page {page_id}: {str(e)}"

    def _content_path(self, page_id: str) -> str:
        return f"/rest/api/content/{quote(page_id, safe='')}"

    def _client(self, credential: Credential, timeout: float | None) -> httpx.AsyncClient:
        event_hooks = {}
        if self.debug:
            event_hooks = {"request": [self._log_request], "response": [self._log_response]}

        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(credential.username, credential.password),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=self.transport,
            event_hooks=event_hooks,
        )

    async def _log_request(self, request: httpx.Request) -> None:
        logger.debug(f"{request.method} {request.url}")

    async def _log_response(self, response: httpx.Response) -> None:
        request = response.request
        logger.debug(f"{request.method} {request.url} -> {response.status_code}")
