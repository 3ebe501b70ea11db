"""Reference dataset fetcher.

Retrieves the latest published reference instrument list from a GitHub
release feed and normalizes it into plain symbols. Two sequential HTTP
calls with a selection step in between:

1. GET the latest release metadata of the reference repository
2. Pick the first asset whose name ends with the list suffix
3. GET that asset as text and normalize it line by line

There is no cache and no retry: a missing asset or failed call ends the run.
"""

import requests
from pydantic import ValidationError

from config.settings import GlobalConfig, get_config
from src.exceptions import (
    ReferenceAssetMissingError,
    ReferenceFetchError,
    ReferenceMetadataError,
)
from src.logger import get_logger
from src.models import ReferenceRelease, ReleaseAsset

log = get_logger(__name__)


def normalize_reference(text: str, prefix: str) -> list[str]:
    """Strip the exchange prefix and whitespace from each line of a list.

    Blank lines are dropped; order and duplicates are preserved.

    Example:
        >>> normalize_reference("NSE:TCS\\r\\n\\n NSE:INFY \\n", "NSE:")
        ['TCS', 'INFY']
    """
    symbols: list[str] = []
    for line in text.split("\n"):
        entry = line.strip()
        if prefix:
            entry = entry.removeprefix(prefix).strip()
        if entry:
            symbols.append(entry)
    return symbols


class ReferenceFetcher:
    """Fetches and normalizes the reference symbol list.

    Attributes:
        config: GlobalConfig with feed coordinates and HTTP settings.
        session: requests.Session carrying the feed headers.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config or get_config()
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": self.config.http_user_agent,
            "Accept": "application/vnd.github+json",
        })

    @property
    def release_url(self) -> str:
        return (
            f"{self.config.release_api_base}/repos/"
            f"{self.config.reference_repository}/releases/latest"
        )

    def fetch_release(self) -> ReferenceRelease:
        """Retrieve metadata of the latest release.

        Raises:
            ReferenceMetadataError: On non-2xx status or an unusable body.
            ReferenceFetchError: On transport failures.
        """
        url = self.release_url
        log.debug("Requesting release metadata", url=url)

        try:
            response = self.session.get(url, timeout=self.config.http_timeout_sec)
        except requests.RequestException as exc:
            raise ReferenceFetchError(url=url, reason=str(exc)) from exc

        if not response.ok:
            raise ReferenceMetadataError(
                url=url,
                reason=f"HTTP {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        try:
            release = ReferenceRelease.model_validate(response.json())
        except requests.JSONDecodeError as exc:
            raise ReferenceMetadataError(url=url, reason="body is not JSON") from exc
        except ValidationError as exc:
            raise ReferenceMetadataError(
                url=url, reason=f"unexpected release shape: {exc.error_count()} errors"
            ) from exc

        log.info(
            "Release metadata received",
            repository=self.config.reference_repository,
            tag=release.tag_name,
            assets=len(release.assets),
        )
        return release

    def select_asset(self, release: ReferenceRelease) -> ReleaseAsset:
        """Pick the list asset out of a release.

        Raises:
            ReferenceAssetMissingError: If no asset has the expected suffix.
        """
        suffix = self.config.reference_asset_suffix
        asset = release.find_asset(suffix)
        if asset is None:
            raise ReferenceAssetMissingError(
                repository=self.config.reference_repository,
                suffix=suffix,
                asset_names=[a.name for a in release.assets],
            )
        return asset

    def download_asset(self, asset: ReleaseAsset) -> str:
        """Download an asset's content as text.

        Raises:
            ReferenceFetchError: On transport failures or non-2xx status.
        """
        url = asset.browser_download_url
        log.debug("Downloading reference asset", name=asset.name, url=url)

        try:
            response = self.session.get(url, timeout=self.config.http_timeout_sec)
        except requests.RequestException as exc:
            raise ReferenceFetchError(url=url, reason=str(exc)) from exc

        if not response.ok:
            raise ReferenceFetchError(
                url=url,
                reason=f"HTTP {response.status_code} {response.reason}",
                status_code=response.status_code,
            )

        try:
            return response.content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ReferenceFetchError(url=url, reason=f"asset is not UTF-8 text: {exc}") from exc

    def fetch(self) -> list[str]:
        """Return the normalized reference symbols of the latest release."""
        release = self.fetch_release()
        asset = self.select_asset(release)
        symbols = normalize_reference(self.download_asset(asset), self.config.exchange_prefix)

        log.info("Reference list normalized", asset=asset.name, symbols=len(symbols))
        return symbols
