"""npm registry lookups used by the CLI to show the latest published version."""

from __future__ import annotations

from urllib.parse import quote

import requests
from requests import Response
from tenacity import retry, stop_after_attempt, wait_fixed

from .config import DEFAULT_REGISTRY_URL
from .errors import RegistryError

USER_AGENT = "npm-inspector (+https://github.com/npm-inspector/npm-inspector)"


@retry(reraise=True, stop=stop_after_attempt(3), wait=wait_fixed(1))
def _http_get(url: str) -> Response:
    return requests.get(
        url,
        headers={"User-Agent": USER_AGENT, "Accept": "application/vnd.npm.install-v1+json"},
        timeout=10,
    )


def package_url(name: str, registry_url: str = DEFAULT_REGISTRY_URL) -> str:
    """Registry document URL; the scope separator must stay escaped."""
    return f"{registry_url.rstrip('/')}/{quote(name, safe='@')}"


def fetch_latest_version(name: str, registry_url: str = DEFAULT_REGISTRY_URL) -> str:
    """Return the ``latest`` dist-tag of ``name``."""

    url = package_url(name, registry_url)
    try:
        response = _http_get(url)
    except requests.RequestException as exc:  # pragma: no cover - network failure path
        raise RegistryError(f"Failed to fetch {name} from registry: {exc}") from exc

    if response.status_code == 404:
        raise RegistryError(f"Package {name} is not published on {registry_url}")
    if response.status_code != 200:
        raise RegistryError(
            f"Unexpected status code {response.status_code} fetching {name} from registry"
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise RegistryError(f"Invalid JSON from registry for {name}: {exc}") from exc

    latest = (payload.get("dist-tags") or {}).get("latest") if isinstance(payload, dict) else None
    if not isinstance(latest, str) or not latest:
        raise RegistryError(f"Registry document for {name} has no latest dist-tag")
    return latest
