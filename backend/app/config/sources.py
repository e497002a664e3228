from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from app.config.settings import Settings

SOURCE_TYPES = {"miniflux", "rss", "gnews"}
GNEWS_ENDPOINT = "https://gnews.io/api/v4/top-headlines"


@dataclass(frozen=True)
class SourceConfig:
    key: str
    name: str
    source_type: str
    endpoint: str
    auth_token: str | None = None
    requires_auth: bool = False

    def public_view(self) -> dict[str, object]:
        return {
            "key": self.key,
            "name": self.name,
            "source_type": self.source_type,
            "endpoint": self.endpoint,
            "requires_auth": self.requires_auth,
            "has_credential": bool(self.auth_token),
        }


def _rss_key(url: str, index: int) -> str:
    host = urlparse(url).netloc or "feed"
    return f"rss_{index}_{host}"


def default_source_configs(settings: Settings) -> tuple[SourceConfig, ...]:
    sources: list[SourceConfig] = []
    if settings.miniflux_enabled:
        sources.append(
            SourceConfig(
                key="miniflux",
                name="Miniflux",
                source_type="miniflux",
                endpoint=settings.miniflux_url,
                auth_token=settings.miniflux_api_key,
                requires_auth=True,
            )
        )
    for index, url in enumerate(settings.rss_feeds):
        sources.append(
            SourceConfig(
                key=_rss_key(url, index),
                name=urlparse(url).netloc or url,
                source_type="rss",
                endpoint=url,
            )
        )
    if settings.gnews_api_key:
        sources.append(
            SourceConfig(
                key="gnews",
                name="GNews",
                source_type="gnews",
                endpoint=GNEWS_ENDPOINT,
                auth_token=settings.gnews_api_key,
                requires_auth=True,
            )
        )
    return tuple(sources)


def parse_source_configs(payload: object) -> tuple[SourceConfig, ...]:
    if not isinstance(payload, list):
        raise ValueError("Sources file must contain a JSON list")

    sources: list[SourceConfig] = []
    seen_keys: set[str] = set()
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise ValueError(f"Source #{index} must be an object")
        missing = [field for field in ("key", "type", "endpoint") if not raw.get(field)]
        if missing:
            raise ValueError(f"Source #{index} is missing {', '.join(missing)}")
        source_type = str(raw["type"]).lower()
        if source_type not in SOURCE_TYPES:
            raise ValueError(f"Source {raw['key']!r} has unknown type {source_type!r}")
        key = str(raw["key"])
        if key in seen_keys:
            raise ValueError(f"Duplicate source key {key!r}")
        seen_keys.add(key)

        token_env = raw.get("token_env")
        token = os.getenv(token_env) if token_env else None
        sources.append(
            SourceConfig(
                key=key,
                name=str(raw.get("name") or key),
                source_type=source_type,
                endpoint=str(raw["endpoint"]).rstrip("/") if source_type == "miniflux" else str(raw["endpoint"]),
                auth_token=token or None,
                requires_auth=bool(raw.get("requires_auth", source_type in {"miniflux", "gnews"})),
            )
        )
    return tuple(sources)


def load_source_configs(settings: Settings) -> tuple[SourceConfig, ...]:
    """Build the static source list. Called once at startup."""
    if not settings.sources_path:
        return default_source_configs(settings)

    path = Path(settings.sources_path)
    if not path.exists():
        raise FileNotFoundError(f"Sources file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid sources file {path}: {exc}") from exc
    return parse_source_configs(payload)
