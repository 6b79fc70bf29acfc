"""Raw OSCAL source download.

Fetches the NIST SP 800-53 Rev 5 catalog and the LOW/MODERATE/HIGH baseline
profiles from the usnistgov/oscal-content repository and records a checksum
manifest next to them.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from ..errors import DownloadError
from ..models.source import Manifest, ManifestEntry, SourceFile
from ..utils.timestamps import utc_timestamp
from .config import raw_dir

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"

_SOURCE_DESCRIPTIONS = {
    "catalog": ("catalog", "NIST 800-53 Rev 5 Control Catalog"),
    "low": ("baseline-low", "NIST 800-53 Rev 5 LOW Baseline Profile"),
    "moderate": ("baseline-moderate", "NIST 800-53 Rev 5 MODERATE Baseline Profile"),
    "high": ("baseline-high", "NIST 800-53 Rev 5 HIGH Baseline Profile"),
}


def get_source_files(config: dict) -> list[SourceFile]:
    base_url = config["source"]["base_url"].rstrip("/")
    files: list[SourceFile] = []
    for key, filename in config["source"]["files"].items():
        name, description = _SOURCE_DESCRIPTIONS.get(key, (key, filename))
        files.append(SourceFile(
            name=name,
            filename=filename,
            url=f"{base_url}/{filename}",
            description=description,
        ))
    return files


def calculate_checksum(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def load_manifest(directory: Path) -> Optional[Manifest]:
    manifest_path = directory / MANIFEST_FILENAME
    if not manifest_path.exists():
        return None
    try:
        return Manifest.model_validate_json(manifest_path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest_path, e)
        return None


def save_manifest(directory: Path, manifest: Manifest) -> Path:
    manifest_path = directory / MANIFEST_FILENAME
    data = manifest.model_dump(mode="json", by_alias=True)
    manifest_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return manifest_path


def validate_oscal_json(content: str, filename: str) -> Optional[str]:
    """Return an error message when content lacks its OSCAL root property."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        return f"Invalid JSON - {e}"

    if not isinstance(data, dict):
        return "Expected a JSON object"
    if "catalog" in filename and "catalog" not in data:
        return "Missing 'catalog' root property"
    if "profile" in filename and "profile" not in data:
        return "Missing 'profile' root property"
    return None


def needs_download(
    source: SourceFile,
    directory: Path,
    manifest: Optional[Manifest],
    force: bool = False,
) -> bool:
    if force or not (directory / source.filename).exists():
        return True
    return manifest is None or manifest.entry_for(source.filename) is None


def is_download_needed(config: dict, force: bool = False) -> bool:
    directory = raw_dir(config)
    manifest = load_manifest(directory)
    return any(needs_download(s, directory, manifest, force) for s in get_source_files(config))


def _is_retryable(error: httpx.HTTPError) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status == 429 or status >= 500
    return isinstance(error, httpx.TransportError)


def download_file(
    client: httpx.Client,
    url: str,
    retry_attempts: int = 3,
    retry_delay: float = 1,
) -> bytes:
    """GET ``url`` with linear backoff on transient failures."""
    attempts = max(retry_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            logger.debug("Downloading %s (attempt %d)", url, attempt)
            response = client.get(url)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            if not _is_retryable(e) or attempt >= attempts:
                raise DownloadError(f"Download failed for {url}: {e}") from e
            logger.warning("Attempt %d for %s failed (%s), retrying...", attempt, url, e)
            time.sleep(retry_delay * attempt)

    raise DownloadError(f"Download failed after all retries: {url}")


def download_sources(
    config: dict,
    force: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> Manifest:
    """Download missing (or all, when forced) raw sources and update the manifest."""
    directory = raw_dir(config)
    directory.mkdir(parents=True, exist_ok=True)
    download_config = config["download"]
    manifest = load_manifest(directory)

    entries: list[ManifestEntry] = []
    with httpx.Client(
        timeout=download_config.get("timeout_seconds", 60),
        headers={
            "Accept": "application/json",
            "User-Agent": download_config.get("user_agent", "oscalcat"),
        },
        follow_redirects=True,
        transport=transport,
    ) as client:
        for source in get_source_files(config):
            if not needs_download(source, directory, manifest, force):
                logger.info("Using cached %s", source.filename)
                entries.append(manifest.entry_for(source.filename))
                continue

            content = download_file(
                client,
                source.url,
                retry_attempts=download_config.get("retry_attempts", 3),
                retry_delay=download_config.get("retry_delay_seconds", 1),
            )
            error = validate_oscal_json(content.decode("utf-8", errors="replace"), source.filename)
            if error:
                raise DownloadError(f"{source.filename}: {error}")

            (directory / source.filename).write_bytes(content)
            logger.info("Downloaded %s (%d bytes)", source.filename, len(content))
            entries.append(ManifestEntry(
                name=source.name,
                filename=source.filename,
                url=source.url,
                checksum=calculate_checksum(content),
                size=len(content),
                downloaded_at=utc_timestamp(),
            ))

    manifest = Manifest(
        generated_at=utc_timestamp(),
        source=config["source"]["url"],
        files=entries,
    )
    save_manifest(directory, manifest)
    return manifest
