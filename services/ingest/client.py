"""
Zendesk REST Client
Thin httpx client for the Zendesk v2 API used by the sync engine
"""

import time
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

import httpx
import structlog

logger = structlog.get_logger()

# Returned instead of a page when the export cursor gets within 5 minutes of now
TOO_RECENT_MARKER = "Too recent start_time"

# Ticket export endpoint; rows use `field_<id>` keys and denormalized names
TICKET_EXPORT_PATH = "exports/tickets.json"


class ZendeskAPIError(Exception):
    """Non-success response from the Zendesk API"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"Zendesk API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class AuthenticationError(ZendeskAPIError):
    """Credentials were rejected or resolved to the anonymous user"""


class StartTimeTooRecent(ZendeskAPIError):
    """Export start_time is too close to now; there are no more pages"""


@dataclass
class ExportPage:
    """One page of the incremental ticket export"""
    tickets: list[dict] = field(default_factory=list)
    next_page: Optional[str] = None
    end_time: Optional[int] = None
    end_of_stream: bool = False


class ZendeskClient:
    """
    Client for the Zendesk v2 REST API.

    Handles:
    - Basic auth with a password or an API token
    - Retrying rate-limited (429) requests after Retry-After
    - Following `next_page` links on list endpoints
    """

    def __init__(
        self,
        domain: str,
        user: str,
        password: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 5,
        per_page: int = 100,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.domain = domain.rstrip("/")
        self.base_url = f"https://{self.domain}/api/v2"
        self.user = user
        self.max_retries = max_retries
        self.per_page = per_page

        if api_token:
            auth = (f"{user}/token", api_token)
        else:
            auth = (user, password or "")

        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        logger.info("Created Zendesk client", user=user, api=self.base_url)

    def __enter__(self) -> "ZendeskClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        """GET a JSON document, retrying while rate limited"""
        attempt = 0
        while True:
            response = self._client.get(url, params=params)
            if response.status_code != 429 or attempt >= self.max_retries:
                break
            attempt += 1
            delay = _retry_after(response)
            logger.warning("Rate limited by Zendesk, retrying", retry_after=delay, attempt=attempt)
            time.sleep(delay)

        if response.status_code == 401:
            raise AuthenticationError(response.status_code, _error_message(response))
        if response.is_error:
            message = _error_message(response)
            if TOO_RECENT_MARKER in message:
                raise StartTimeTooRecent(response.status_code, message)
            raise ZendeskAPIError(response.status_code, message)
        return response.json()

    def _paginate(self, path: str, key: str) -> Iterator[dict]:
        """Yield every item of a list endpoint, following next_page links"""
        url: Optional[str] = path
        params: Optional[dict] = {"per_page": self.per_page}
        while url:
            payload = self._get(url, params=params)
            for item in payload.get(key) or []:
                yield item
            url = payload.get("next_page")
            # next_page already carries the query string
            params = None

    def current_user(self) -> dict:
        """The user the credentials resolve to"""
        return self._get("users/me.json").get("user") or {}

    def verify_credentials(self) -> dict:
        """
        Check the credentials are valid.

        Zendesk silently falls back to the anonymous user (id null) when
        credentials are wrong, so a 200 alone is not enough.
        """
        user = self.current_user()
        if user.get("id") is None:
            raise AuthenticationError(
                401, "Cannot initialize a valid Zendesk client. Please check your login credentials."
            )
        logger.info("Successfully initialized a Zendesk client", user=self.user)
        return user

    def check_health(self) -> bool:
        """Check if the Zendesk API is reachable with these credentials"""
        try:
            return self.current_user().get("id") is not None
        except Exception as e:
            logger.warning("Zendesk health check failed", error=str(e))
            return False

    def organizations(self) -> Iterator[dict]:
        return self._paginate("organizations.json", "organizations")

    def users(self) -> Iterator[dict]:
        return self._paginate("users.json", "users")

    def forums(self) -> Iterator[dict]:
        return self._paginate("forums.json", "forums")

    def topics(self) -> Iterator[dict]:
        return self._paginate("topics.json", "topics")

    def ticket_fields(self) -> Iterator[dict]:
        return self._paginate("ticket_fields.json", "ticket_fields")

    def ticket_comments(self, ticket_id: int) -> Iterator[dict]:
        return self._paginate(f"tickets/{ticket_id}/comments.json", "comments")

    def export_tickets(self, start_time: int) -> ExportPage:
        """
        Request the first export page of tickets updated since start_time.

        Args:
            start_time: Unix timestamp (seconds)

        Returns:
            ExportPage with the rows and the cursor for the next page
        """
        return self._export_page(TICKET_EXPORT_PATH, {"start_time": int(start_time)})

    def next_export_page(self, page: ExportPage) -> ExportPage:
        """Request the page that `page.next_page` points to"""
        return self._export_page(page.next_page, None)

    def _export_page(self, url: str, params: Optional[dict]) -> ExportPage:
        payload = self._get(url, params=params)
        # Legacy exports return "results", incremental exports "tickets"
        rows = payload.get("results")
        if rows is None:
            rows = payload.get("tickets") or []
        return ExportPage(
            tickets=rows,
            next_page=payload.get("next_page"),
            end_time=payload.get("end_time"),
            end_of_stream=bool(payload.get("end_of_stream", False)),
        )

    def close(self):
        """Close the underlying HTTP connection pool"""
        self._client.close()


def _retry_after(response: httpx.Response, default: float = 10.0) -> float:
    try:
        return max(float(response.headers.get("Retry-After", default)), 0.0)
    except ValueError:
        return default


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a Zendesk error response"""
    try:
        body: Any = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        description = body.get("description")
        error = body.get("error")
        if isinstance(error, dict):
            description = description or error.get("message")
            error = error.get("title")
        parts = [str(p) for p in (error, description) if p]
        if parts:
            return ": ".join(parts)
    return response.text[:500]
