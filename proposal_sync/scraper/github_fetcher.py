"""GitHub REST API access for the upstream README and proposal repositories."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from proposal_sync import config
from proposal_sync.errors import RemoteFetchError
from proposal_sync.models import RepoMetadata

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": config.REQUEST_USER_AGENT,
    "X-GitHub-Api-Version": config.GITHUB_API_VERSION,
}


def build_session(token: Optional[str] = None) -> requests.Session:
    """Create a session carrying the default headers and optional token auth."""
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


class GitHubFetcher:
    """Fetch raw file contents and repository metadata from the GitHub API.

    Requests are blocking; the async methods run them in a worker thread so
    the resolvers of every table row can be awaited together. Each worker
    thread gets its own session from `session_factory`. Results are
    memoized for the lifetime of the fetcher, i.e. one sync run.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], requests.Session]] = None,
        api_url: str = config.GITHUB_API_URL,
        timeout: float = config.REQUEST_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ):
        self.session_factory = session_factory or (lambda: build_session(config.github_token()))
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._files: Dict[Tuple[str, str, str], str] = {}
        self._metadata: Dict[Tuple[str, str], RepoMetadata] = {}
        self._locks: Dict[Tuple[str, ...], asyncio.Lock] = {}

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _get(self, path: str, accept: str) -> requests.Response:
        url = f"{self.api_url}{path}"
        self.logger.debug(f"GET {url}")
        try:
            response = self._session().get(url, headers={"Accept": accept}, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RemoteFetchError(f"GitHub request failed ({status}): {url}", url, status) from e
        except requests.RequestException as e:
            raise RemoteFetchError(f"GitHub request failed: {url}: {e}", url) from e
        return response

    def get_file_contents(self, owner: str, repo: str, path: str) -> str:
        """Blocking fetch of a file's raw text."""
        response = self._get(f"/repos/{owner}/{repo}/contents/{path}", config.GITHUB_RAW_MEDIA_TYPE)
        response.encoding = response.encoding or "utf-8"
        return response.text

    def get_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """Blocking fetch of the repository description and top-level listing."""
        repo_info: Dict[str, Any] = self._get(
            f"/repos/{owner}/{repo}", config.GITHUB_JSON_MEDIA_TYPE
        ).json()
        listing = self._get(f"/repos/{owner}/{repo}/contents", config.GITHUB_JSON_MEDIA_TYPE).json()
        if not isinstance(listing, list):
            listing = []
        return RepoMetadata(
            description=repo_info.get("description"),
            files=[entry.get("path", "") for entry in listing if isinstance(entry, dict)],
        )

    def _lock(self, key: Tuple[str, ...]) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def fetch_file_contents(self, owner: str, repo: str, path: str) -> str:
        key = (owner, repo, path)
        async with self._lock(("file",) + key):
            if key not in self._files:
                self._files[key] = await asyncio.to_thread(self.get_file_contents, owner, repo, path)
                self.logger.info(f"Fetched {owner}/{repo}/{path}")
            return self._files[key]

    async def fetch_metadata(self, owner: str, repo: str) -> RepoMetadata:
        key = (owner, repo)
        async with self._lock(("metadata",) + key):
            if key not in self._metadata:
                self._metadata[key] = await asyncio.to_thread(self.get_metadata, owner, repo)
                self.logger.info(f"Fetched metadata for {owner}/{repo}")
            return self._metadata[key]

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()
