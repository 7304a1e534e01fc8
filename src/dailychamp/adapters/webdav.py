"""WebDAV adapter - HTTP client for the remote copy of the journal."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import quote, unquote

import requests

DAV_PATH = "/remote.php/dav/files/{username}"
DEFAULT_FILE_PATH = "/dailychamp/daily.md"
DAV_NS = "{DAV:}"

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a remote operation fails."""

    pass


class AuthenticationError(SyncError):
    """Raised when the server rejects the credentials (401)."""

    pass


class RateLimitError(SyncError):
    """Raised when the server throttles requests (429)."""

    pass


class NetworkError(SyncError):
    """Raised when the server cannot be reached."""

    pass


class WebDAVAdapter:
    """
    Nextcloud WebDAV adapter.

    Implements RemoteStore protocol. Stateless file protocol: GET, PUT,
    MKCOL and PROPFIND against one document path. No business logic - just I/O.
    """

    def __init__(
        self,
        server_url: str,
        username: str,
        password: str,
        file_path: str = DEFAULT_FILE_PATH,
        session: requests.Session | None = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.username = username
        self.file_path = file_path if file_path.startswith("/") else f"/{file_path}"
        self._session = session or requests.Session()
        self._session.auth = (username, password)
        self._directories_ready = False

    @property
    def dav_root(self) -> str:
        return self.server_url + DAV_PATH.format(username=quote(self.username))

    @property
    def file_url(self) -> str:
        return self._url(self.file_path)

    def _url(self, path: str) -> str:
        return self.dav_root + quote(path, safe="/")

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, mapping auth, throttling and transport failures."""
        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}") from e

        if resp.status_code == 401:
            raise AuthenticationError(
                "Authentication failed. Please check your username and password."
            )
        if resp.status_code == 429:
            raise RateLimitError(f"Too Many Requests: {method} {url}")
        return resp

    def _propfind(self, url: str, depth: int) -> requests.Response:
        return self._request("PROPFIND", url, headers={"Depth": str(depth)})

    # ============== Document ==============

    def download(self) -> str | None:
        """Download the journal. Returns None if it does not exist yet."""
        return self.download_file(self.file_path)

    def upload(self, content: str) -> None:
        """Upload the journal, creating parent directories the first time."""
        if not self._directories_ready:
            self.ensure_parent_directories(self.file_path)
            self._directories_ready = True
        self._put(self.file_path, content)

    def exists(self) -> bool:
        """Check if the journal exists on the server."""
        resp = self._propfind(self.file_url, depth=0)
        if resp.status_code == 207:
            return True
        if resp.status_code == 404:
            return False
        raise SyncError(f"Failed to check file: {resp.status_code} {resp.reason}")

    def get_last_modified(self) -> datetime | None:
        """Server-side modification time of the journal, if reported."""
        resp = self._propfind(self.file_url, depth=0)
        if resp.status_code != 207:
            logger.debug(f"No metadata for {self.file_path}: {resp.status_code}")
            return None

        for response in _parse_multistatus(resp.content):
            value = response.findtext(f".//{DAV_NS}getlastmodified")
            if not value:
                continue
            try:
                modified = parsedate_to_datetime(value.strip())
            except (TypeError, ValueError):
                logger.warning(f"Unparsable last-modified value: {value!r}")
                return None
            if modified.tzinfo is None:
                modified = modified.replace(tzinfo=timezone.utc)
            return modified
        return None

    # ============== Directories ==============

    def make_directory(self, dir_path: str) -> bool:
        """MKCOL one directory. 201 (created) and 405 (exists) both count as success."""
        resp = self._request("MKCOL", self._url(dir_path))
        if resp.status_code in (201, 405):
            return True
        logger.warning(f"Could not create {dir_path}: {resp.status_code} {resp.reason}")
        return False

    def ensure_parent_directories(self, path: str) -> None:
        """Create each parent segment in turn; WebDAV won't create them for us."""
        segments = [p for p in path.split("/") if p][:-1]
        current = ""
        for segment in segments:
            current += f"/{segment}"
            self.make_directory(current)

    def list_directory(self, dir_path: str) -> list[str]:
        """Markdown file names directly inside dir_path ([] if the directory is missing)."""
        resp = self._propfind(self._url(dir_path), depth=1)
        if resp.status_code == 404:
            return []
        if resp.status_code != 207:
            raise SyncError(f"Failed to list directory: {resp.status_code} {resp.reason}")

        names = []
        for response in _parse_multistatus(resp.content):
            href = unquote(response.findtext(f"{DAV_NS}href") or "")
            if not href or href.endswith("/"):
                continue
            name = href.rsplit("/", 1)[-1]
            if name.endswith(".md"):
                names.append(name)
        return names

    # ============== Arbitrary files ==============

    def download_file(self, path: str) -> str | None:
        """Download any file under the DAV root. Returns None on 404."""
        resp = self._request("GET", self._url(path))
        if resp.status_code == 200:
            return resp.content.decode("utf-8")
        if resp.status_code == 404:
            return None
        raise SyncError(f"Failed to download: {resp.status_code} {resp.reason}")

    def upload_file(self, path: str, content: str) -> None:
        """Upload any file under the DAV root, creating its parents."""
        self.ensure_parent_directories(path)
        self._put(path, content)

    def _put(self, path: str, content: str) -> None:
        resp = self._request(
            "PUT",
            self._url(path),
            headers={"Content-Type": "text/markdown; charset=utf-8"},
            data=content.encode("utf-8"),
        )
        if resp.status_code not in (200, 201, 204):
            raise SyncError(f"Failed to upload: {resp.status_code} {resp.reason}")


def _parse_multistatus(body: bytes) -> list[ET.Element]:
    """<d:response> elements of a 207 Multi-Status body."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise SyncError(f"Malformed WebDAV response: {e}") from e
    return root.findall(f"{DAV_NS}response")
