"""GitHub Releases feed.

Fetches pages from GET /repos/{owner}/{repo}/releases. GitHub has no
server-side date filter for this endpoint, so the catalog builder pages
through it and stops on its own; this module only serves single pages.

Design notes:
- Uses httpx for async HTTP requests
- One request per call, no retries; a non-2xx response raises
  ReleaseFeedError with the response body
- Uses a Protocol so the builder doesn't depend on the concrete
  implementation (makes testing with mocks easy)

GitHub API docs: https://docs.github.com/en/rest/releases/releases
"""

from __future__ import annotations

from typing import Protocol

import httpx

from feature_tracker.logging_config import get_logger
from feature_tracker.schemas import ReleasePage, ReleaseRecord

logger = get_logger(__name__)

MAX_PER_PAGE = 100


class ReleaseFeedError(RuntimeError):
    """The release feed answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class ReleaseFeedProtocol(Protocol):
    """Interface for paginated release listings."""

    async def list_releases(self, page: int, per_page: int = MAX_PER_PAGE) -> ReleasePage:
        """Fetch one page of releases, newest first.

        Args:
            page: 1-based page index
            per_page: Page size, at most 100

        Returns:
            The releases on the page and whether another page exists
        """
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubReleaseFeed:
    """Release feed backed by the GitHub REST API.

    Usage:
        feed = GitHubReleaseFeed("microsoft", "vscode", token="ghp_...")
        page = await feed.list_releases(1)
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        api_base: str = "https://api.github.com",
        user_agent: str = "copilot-feature-tracker/lookup-script",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the feed.

        Args:
            owner: Repository owner (e.g., "microsoft")
            repo: Repository name (e.g., "vscode")
            token: GitHub token; requests are anonymous without one
            api_base: REST API root (GITHUB_API_URL in Actions)
            user_agent: User-Agent header sent with every request
            transport: Optional httpx transport, used by tests
        """
        self.owner = owner
        self.repo = repo
        self._api_base = api_base.rstrip("/")
        self._transport = transport
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": user_agent,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def list_releases(self, page: int, per_page: int = MAX_PER_PAGE) -> ReleasePage:
        """Fetch one page of releases.

        Raises:
            ReleaseFeedError: If GitHub returns a non-success status
        """
        async with httpx.AsyncClient(
            base_url=self._api_base,
            headers=self._headers,
            timeout=30.0,
            transport=self._transport,
        ) as client:
            resp = await client.get(
                f"/repos/{self.owner}/{self.repo}/releases",
                params={"per_page": min(per_page, MAX_PER_PAGE), "page": page},
            )

        if not resp.is_success:
            logger.error(
                "release_feed_failed",
                repo=f"{self.owner}/{self.repo}",
                page=page,
                status_code=resp.status_code,
            )
            raise ReleaseFeedError(resp.status_code, resp.text)

        data = resp.json()
        releases = [ReleaseRecord.model_validate(r) for r in data] if isinstance(data, list) else []
        return ReleasePage(
            releases=releases,
            has_next=self._has_next_link(resp.headers.get("link", "")),
        )

    @staticmethod
    def _has_next_link(link_header: str) -> bool:
        """Check a GitHub Link header for a rel="next" URL."""
        if not link_header:
            return False
        for part in link_header.split(","):
            if 'rel="next"' in part.lower():
                return True
        return False


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockReleaseFeed:
    """Release feed serving predefined pages.

    Pages are plain lists of GitHub-shaped release dicts; every page but
    the last reports has_next. Requested page numbers are recorded in
    .requested so tests can check how far the builder paged.

    Usage:
        feed = MockReleaseFeed(pages=[[{"tag_name": "v1.0", ...}], [...]])
        page = await feed.list_releases(1)
    """

    def __init__(
        self,
        pages: list[list[dict]] | None = None,
        owner: str = "mock-owner",
        repo: str = "mock-repo",
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._pages = pages or []
        self.requested: list[int] = []

    async def list_releases(self, page: int, per_page: int = MAX_PER_PAGE) -> ReleasePage:
        self.requested.append(page)
        if page < 1 or page > len(self._pages):
            return ReleasePage()
        return ReleasePage(
            releases=[ReleaseRecord.model_validate(r) for r in self._pages[page - 1]],
            has_next=page < len(self._pages),
        )
