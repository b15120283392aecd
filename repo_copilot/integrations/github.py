"""GitHub REST and GraphQL client built on httpx."""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from repo_copilot.models import GitHubRepository
from repo_copilot.utils.logger import get_logger
from repo_copilot.utils.shell import get_remote_url

logger = get_logger(__name__)

REMOTE_URL_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/]+)(?:\.git)?$")


class GitHubAPIError(Exception):
    """GitHub API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code, None for GraphQL level errors
        """
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthError(GitHubAPIError):
    """GitHub authentication error."""
    pass


class GitHubNotFoundError(GitHubAPIError):
    """Requested GitHub resource does not exist."""
    pass


class GitHubClient:
    """Thin async client for the GitHub REST and GraphQL APIs."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            token: Personal access token
            api_url: REST API base URL (GraphQL lives at ``{api_url}/graphql``)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (used by tests)
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return

        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        text = f"GitHub API {response.request.method} {response.request.url.path} failed ({response.status_code}): {message}"

        if response.status_code in (401, 403):
            raise GitHubAuthError(text, response.status_code)
        if response.status_code == 404:
            raise GitHubNotFoundError(text, response.status_code)
        raise GitHubAPIError(text, response.status_code)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Send a REST request and decode the JSON body.

        Raises:
            GitHubAPIError: On any 4xx/5xx response
        """
        logger.debug(f"GitHub {method} {path}")
        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub API {method} {path} failed: {e}") from e

        self._raise_for_status(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Optional[Any] = None) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, json: Optional[Any] = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def put(self, path: str, json: Optional[Any] = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Fetch every page of a list endpoint by following ``Link: rel=next``."""
        items: List[Any] = []
        query = {"per_page": 100, **(params or {})}
        url: Optional[str] = path

        try:
            async with self._client() as client:
                while url:
                    response = await client.get(url, params=query)
                    self._raise_for_status(response)
                    items.extend(response.json())
                    url = response.links.get("next", {}).get("url")
                    # The next link already carries the query string
                    query = None
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub API GET {path} failed: {e}") from e

        return items

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL query.

        Returns:
            The ``data`` member of the response

        Raises:
            GitHubAPIError: If the request fails or the response carries errors
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        data = await self.post("/graphql", json=payload)
        if data is None:
            raise GitHubAPIError("GraphQL response was empty")
        if data.get("errors"):
            messages = "; ".join(error.get("message", str(error)) for error in data["errors"])
            raise GitHubAPIError(f"GraphQL errors: {messages}")
        return dict(data.get("data") or {})


def parse_remote_url(remote_url: str) -> Optional[GitHubRepository]:
    """Parse owner and name from a GitHub remote URL (HTTPS or SSH)."""
    match = REMOTE_URL_PATTERN.search(remote_url.strip())
    if not match:
        return None
    owner, name = match.groups()
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return GitHubRepository(owner=owner, name=name, remote_url=remote_url.strip())


def detect_repository(cwd: Optional[Union[str, Path]] = None) -> Optional[GitHubRepository]:
    """Detect GitHub repository from the ``origin`` remote.

    Returns:
        Repository information or None if not detected
    """
    remote_url = get_remote_url(cwd)
    if not remote_url:
        logger.debug("No origin remote configured")
        return None

    repository = parse_remote_url(remote_url)
    if repository is None:
        logger.debug(f"Origin remote is not a GitHub URL: {remote_url}")
    return repository
