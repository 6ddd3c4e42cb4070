import logging
from dataclasses import dataclass, field

import httpx

from gitclone.config import Settings
from gitclone.errors import TransportError
from gitclone.models.objects import Ref
from gitclone.models.pktline import FLUSH_PKT, format_pkt_line, parse_ref_advertisement

__all__ = ["GitClone", "RefResult", "CloneReport"]

logger = logging.getLogger(__name__)

UPLOAD_PACK_REQUEST = "application/x-git-upload-pack-request"
NAK_PKT = b"0008NAK\n"


@dataclass
class RefResult:
    ref: Ref
    objects_written: int = 0
    files_written: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CloneReport:
    results: list[RefResult] = field(default_factory=list)

    @property
    def failures(self) -> list[RefResult]:
        return [result for result in self.results if not result.ok]


class GitClone:
    """Smart-HTTP session against one remote repository.

    Entering the context discovers the advertised refs; each ref is then
    fetched with its own upload-pack request.
    """

    def __init__(
        self,
        repo_url: str,
        http_client: httpx.Client = None,
        *,
        settings: Settings = None,
    ):
        self.repo_url = str(repo_url).rstrip("/")
        self.settings = settings or Settings()
        self.http_client = http_client or httpx.Client(
            headers={"User-Agent": self.settings.user_agent},
            timeout=self.settings.http_timeout,
            follow_redirects=True,
        )
        self.refs: list[Ref] = []
        self.capabilities: list[str] = []

    def __enter__(self):
        self.http_client.__enter__()
        try:
            self.refs, self.capabilities = self.discover_refs()
        except BaseException:
            self.http_client.__exit__(None, None, None)
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.http_client.__exit__(exc_type, exc_val, exc_tb)

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self.http_client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                url,
                f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(url, str(exc) or type(exc).__name__) from exc
        return response

    def discover_refs(self) -> tuple[list[Ref], list[str]]:
        discover_url = f"{self.repo_url}/info/refs?service=git-upload-pack"
        response = self._request("GET", discover_url)
        refs, capabilities = parse_ref_advertisement(response.content)
        logger.debug("Remote advertised %d refs", len(refs))
        return refs, capabilities

    @staticmethod
    def build_want_request(want: str) -> bytes:
        return b"".join(
            [
                format_pkt_line(f"want {want}\n"),
                FLUSH_PKT,
                format_pkt_line("done\n"),
            ]
        )

    def fetch_pack(self, want: str) -> bytes:
        """Ask upload-pack for ``want`` and return the raw pack stream."""
        upload_pack_url = f"{self.repo_url}/git-upload-pack"
        response = self._request(
            "POST",
            upload_pack_url,
            content=self.build_want_request(want),
            headers={"Content-Type": UPLOAD_PACK_REQUEST},
        )
        data = response.content
        if data.startswith(NAK_PKT):
            return data[len(NAK_PKT) :]
        return data
