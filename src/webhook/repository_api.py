"""
Repository Content Client.

Fetches the current content of changed files from the repository that sent a
notification, using the raw-content host (raw.githubusercontent.com by
default):

    GET {raw_base_url}/{owner}/{repo}/{ref}/{path}

Fetching is the only long-lived blocking step in the pipeline, so each
request carries a timeout and transient failures are retried a bounded
number of times with exponential backoff. Once attempts run out a
FetchFailure is raised; the sender is expected to redeliver.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

import requests

from config import resolve_secret
from content.errors import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_RAW_BASE_URL = "https://raw.githubusercontent.com"

# HTTP statuses worth another attempt; any other non-200 fails immediately
RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}

USER_AGENT = "sitesync content ingester"


class RepositoryClient:
    """
    Client for fetching raw file content at a given commit.

    Attributes:
        raw_base_url: Base URL of the raw-content host
        token: Optional access token for private repositories
        timeout: Per-request timeout in seconds
        max_attempts: Total attempts per file, including the first
        backoff_seconds: Delay before the second attempt; doubles each retry
        max_workers: Upper bound on parallel fetches per notification
    """

    def __init__(
        self,
        raw_base_url: str = DEFAULT_RAW_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 10,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        max_workers: int = 4,
    ):
        self.raw_base_url = raw_base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.max_workers = max(1, max_workers)

        auth = "with token" if token else "anonymous"
        logger.info(f"RepositoryClient initialized for {self.raw_base_url} ({auth})")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RepositoryClient":
        """
        Create a RepositoryClient from the `repository` section of config.yml.

        The access token is optional and may come from `token`,
        `token_file` (Docker secret) or the REPOSITORY_TOKEN environment
        variable, in that order.
        """
        repo_config = config.get("repository", {})
        return cls(
            raw_base_url=repo_config.get("raw_base_url", DEFAULT_RAW_BASE_URL),
            token=resolve_secret(repo_config, "token", "REPOSITORY_TOKEN"),
            timeout=repo_config.get("timeout", 10),
            max_attempts=repo_config.get("max_attempts", 3),
            backoff_seconds=repo_config.get("backoff_seconds", 0.5),
            max_workers=repo_config.get("max_workers", 4),
        )

    def _build_url(self, repository: str, ref: str, path: str) -> str:
        return f"{self.raw_base_url}/{repository}/{quote(ref)}/{quote(path)}"

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def fetch_file(self, repository: str, ref: str, path: str) -> bytes:
        """
        Fetch one file's raw bytes at ref.

        Args:
            repository: "owner/name"
            ref: Commit SHA (or branch) to read from
            path: Repository-relative file path

        Returns:
            The undecoded file content

        Raises:
            FetchFailure: On a non-retryable HTTP status, or once every
                attempt has failed
        """
        url = self._build_url(repository, ref, path)
        last_error = "no attempt made"

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = requests.get(url, headers=self._headers(), timeout=self.timeout)
            except requests.exceptions.Timeout:
                last_error = f"timed out after {self.timeout}s"
            except requests.exceptions.RequestException as e:
                last_error = f"request error: {e}"
            else:
                if response.status_code == 200:
                    logger.debug(f"Fetched {path} at {ref[:12]} ({len(response.content)} bytes)")
                    return response.content
                last_error = f"HTTP {response.status_code}"
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(f"Fetching {path} from {repository}@{ref[:12]} failed: {last_error}")
                    raise FetchFailure(f"Failed to fetch {path}: {last_error}", path=path)

            if attempt < self.max_attempts:
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"Fetching {path} failed ({last_error}), "
                    f"retrying in {delay:.2f}s (attempt {attempt}/{self.max_attempts})"
                )
                time.sleep(delay)

        logger.error(f"Giving up on {path} from {repository}@{ref[:12]} after {self.max_attempts} attempts: {last_error}")
        raise FetchFailure(
            f"Failed to fetch {path} after {self.max_attempts} attempts: {last_error}",
            path=path,
        )

    def fetch_many(self, repository: str, ref: str, paths: Iterable[str]) -> Dict[str, bytes]:
        """
        Fetch several files in parallel.

        Either every file is returned or FetchFailure is raised; callers
        never see a partial result.
        """
        paths = list(dict.fromkeys(paths))
        if not paths:
            return {}

        contents: Dict[str, bytes] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(paths))) as executor:
            futures = {
                executor.submit(self.fetch_file, repository, ref, path): path
                for path in paths
            }
            try:
                for future in as_completed(futures):
                    contents[futures[future]] = future.result()
            except FetchFailure:
                for future in futures:
                    future.cancel()
                raise

        return contents
