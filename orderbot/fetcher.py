"""
Shopify orders fetcher - cursor pagination with bounded retries

Pulls every order created inside a TimeWindow from the Admin REST API.

Behaviour:
- Pages are chased through the ``Link: <...>; rel="next"`` response header
- 429 and 5xx responses are retried on the same URL with backoff
- A single deadline covers every page and every retry wait
- A page cap guards against a source that never stops returning cursors
"""

import logging
import math
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from .window import TimeWindow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 250  # Shopify REST ceiling for ``limit``
DEFAULT_MAX_ATTEMPTS = 5
MAX_BACKOFF_SECONDS = 30
DEFAULT_MAX_PAGES = 10_000
DEFAULT_DEADLINE_SECONDS = 600.0
DEFAULT_TIMEOUT_SECONDS = 30.0
ERROR_BODY_LIMIT = 500


class OrderFetchError(Exception):
    """Base class for failures that abort an orders fetch."""


class FetchError(OrderFetchError):
    """Non-retryable HTTP failure or unreachable source."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class ExhaustedRetriesError(OrderFetchError):
    """A retryable status persisted past the attempt ceiling."""

    def __init__(self, status: int, body: str, attempts: int):
        super().__init__(
            f"Shopify error {status} after {attempts} attempts: {body}"
        )
        self.status = status
        self.body = body
        self.attempts = attempts


class FetchTimeoutError(OrderFetchError, TimeoutError):
    """The overall fetch deadline was exceeded or the fetch was cancelled."""


class ProtocolError(OrderFetchError):
    """The source answered with something that is not a valid orders page."""


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a numeric ``Retry-After`` header, ``None`` if unusable."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return seconds


def backoff_seconds(attempt: int, retry_after: Optional[str] = None) -> float:
    """Wait before retrying after the 1-based ``attempt`` failed.

    The server hint wins; otherwise ``min(2 ** attempt, 30)``.
    """
    hinted = parse_retry_after(retry_after)
    if hinted is not None:
        return hinted
    return float(min(2**attempt, MAX_BACKOFF_SECONDS))


def _truncate(text: str) -> str:
    if len(text) <= ERROR_BODY_LIMIT:
        return text
    return text[:ERROR_BODY_LIMIT] + "..."


class Deadline:
    """Wall-clock budget for a whole fetch, with cancellable waits."""

    def __init__(
        self,
        budget_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.budget_seconds = budget_seconds
        self._clock = clock
        self._sleep = sleep
        self._cancel_event = cancel_event or threading.Event()
        self._expires_at = clock() + budget_seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def check(self) -> None:
        """Raise if the budget is spent or the fetch was cancelled."""
        if self._cancel_event.is_set():
            raise FetchTimeoutError("Orders fetch cancelled")
        if self.remaining() <= 0:
            raise FetchTimeoutError(
                f"Orders fetch exceeded its {self.budget_seconds:.0f}s deadline"
            )

    def wait(self, seconds: float) -> None:
        """Block for ``seconds`` unless that would overrun the deadline."""
        self.check()
        if seconds > self.remaining():
            raise FetchTimeoutError(
                f"Backoff of {seconds:.1f}s would exceed the "
                f"{self.budget_seconds:.0f}s fetch deadline"
            )
        if self._sleep is not None:
            self._sleep(seconds)
        elif self._cancel_event.wait(seconds):
            raise FetchTimeoutError("Orders fetch cancelled")


class OrdersFetcher:
    """Fetch all orders in a creation-time window from the Shopify REST API."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = "2023-10",
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        max_pages: int = DEFAULT_MAX_PAGES,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.shop = shop
        self.api_version = api_version
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.deadline_seconds = deadline_seconds
        self.max_pages = max_pages
        self._sleep = sleep
        self._clock = clock
        self._cancel_event = threading.Event()

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "X-Shopify-Access-Token": access_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": "OrderBot/1.0 (Daily Orders Report)",
            }
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "OrdersFetcher":
        return cls(
            shop=settings.shop or "",
            access_token=settings.access_token or "",
            api_version=settings.shopify_api_version,
            timeout=settings.http_timeout_seconds,
            max_attempts=settings.http_max_attempts,
            deadline_seconds=settings.fetch_deadline_seconds,
            max_pages=settings.fetch_max_pages,
            **kwargs,
        )

    def __repr__(self) -> str:
        return f"OrdersFetcher(shop={self.shop!r}, api_version={self.api_version!r})"

    @property
    def orders_url(self) -> str:
        return (
            f"https://{self.shop}.myshopify.com/admin/api/"
            f"{self.api_version}/orders.json"
        )

    def build_params(
        self, window: TimeWindow, unfulfilled_hint: bool = False
    ) -> Dict[str, str]:
        """Query parameters for the first page of ``window``."""
        params = {
            "status": "any",
            "limit": str(MAX_PAGE_SIZE),
            **window.to_query_params(),
            "order": "created_at asc",
        }
        if unfulfilled_hint:
            # Server-side narrowing only; the filter engine re-verifies locally.
            params["fulfillment_status"] = "unfulfilled"
        return params

    def cancel(self) -> None:
        """Abort the running fetch, or the next one if none is running.

        The fetch raises FetchTimeoutError. Once that fetch ends the fetcher
        is usable again.
        """
        self._cancel_event.set()

    def fetch_all(
        self, window: TimeWindow, unfulfilled_hint: bool = False
    ) -> List[Dict[str, Any]]:
        """Drain every page of ``window`` into one ordered list."""
        orders: List[Dict[str, Any]] = []
        pages = 0
        for page in self.iter_pages(window, unfulfilled_hint=unfulfilled_hint):
            orders.extend(page)
            pages += 1
        logger.info(f"Pulled {len(orders)} orders total across {pages} page(s)")
        return orders

    def iter_pages(
        self, window: TimeWindow, unfulfilled_hint: bool = False
    ) -> Iterator[List[Dict[str, Any]]]:
        """Lazily yield the ``orders`` list of each page in source order."""
        deadline = Deadline(
            self.deadline_seconds,
            clock=self._clock,
            sleep=self._sleep,
            cancel_event=self._cancel_event,
        )
        url: Optional[str] = self.orders_url
        # The next-page URL carries its own cursor, so params go on page 1 only.
        params: Optional[Dict[str, str]] = self.build_params(window, unfulfilled_hint)
        page_number = 0

        logger.info(
            f"Fetching orders created from {window.start.isoformat()} "
            f"to {window.end.isoformat()}"
        )

        try:
            while url:
                page_number += 1
                logger.info(f"Fetching page {page_number}...")
                response = self._get_with_retries(url, params, deadline)
                orders = self._extract_orders(response)
                next_url = self.next_page_url(response)

                if next_url and next_url == url:
                    raise ProtocolError(f"Pagination cursor did not advance: {url}")
                if next_url and page_number >= self.max_pages:
                    raise ProtocolError(
                        f"Pagination exceeded {self.max_pages} pages; aborting"
                    )

                logger.debug(f"Page {page_number}: {len(orders)} orders")
                yield orders

                url = next_url
                params = None
        finally:
            # A cancel applies to one fetch only.
            self._cancel_event.clear()

    @staticmethod
    def next_page_url(response: requests.Response) -> Optional[str]:
        """URL of the ``rel="next"`` Link entry, ``None`` on the last page."""
        return response.links.get("next", {}).get("url") or None

    @staticmethod
    def _extract_orders(response: requests.Response) -> List[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError(f"Orders page is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ProtocolError("Orders page is not a JSON object")
        orders = data.get("orders")
        if not isinstance(orders, list):
            raise ProtocolError("Orders page is missing the 'orders' list")
        return orders

    def _get_with_retries(
        self,
        url: str,
        params: Optional[Dict[str, str]],
        deadline: Deadline,
    ) -> requests.Response:
        """GET ``url``, retrying 429/5xx up to ``max_attempts`` times."""
        for attempt in range(1, self.max_attempts + 1):
            deadline.check()
            remaining = deadline.remaining()
            request_timeout = min(self.timeout, remaining)

            try:
                response = self.session.get(
                    url, params=params, timeout=request_timeout
                )
            except requests.exceptions.Timeout as exc:
                if request_timeout < self.timeout:
                    raise FetchTimeoutError(
                        f"Orders fetch exceeded its {self.deadline_seconds:.0f}s "
                        "deadline while waiting for a response"
                    ) from exc
                raise FetchError(f"Request to Shopify timed out: {exc}") from exc
            except requests.exceptions.RequestException as exc:
                raise FetchError(f"Shopify unreachable: {exc}") from exc

            status = response.status_code
            if is_retryable_status(status):
                if attempt >= self.max_attempts:
                    raise ExhaustedRetriesError(
                        status, _truncate(response.text or ""), attempt
                    )
                wait = backoff_seconds(attempt, response.headers.get("Retry-After"))
                logger.warning(
                    f"Got {status}. Retrying in {wait:.0f}s "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                deadline.wait(wait)
                continue

            if not response.ok:
                body = _truncate(response.text or "")
                raise FetchError(
                    f"Failed request {status}: {body}", status=status, body=body
                )

            return response

        # Unreachable: the final attempt either returns or raises above.
        raise AssertionError("retry loop exited without a result")
