"""Configuration for catalog builds and milestone backfills.

Settings resolve in three layers, later ones winning:
1. Defaults below (the two upstream products and their output paths)
2. An optional YAML file (--config, or the TRACKER_CONFIG env var)
3. Environment variables used by the GitHub Actions workflow:
   GITHUB_API_URL, GH_TOKEN / GITHUB_TOKEN, YEARS_BACK

A sample file lives at tracker.example.yaml in the repository root.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class ProductConfig(BaseModel):
    """An upstream GitHub repository whose releases form a catalog."""

    owner: str
    repo: str
    output: Path
    user_agent: str = "copilot-feature-tracker/lookup-script"
    ide: str | None = None
    keep_tag: bool = False


def default_products() -> dict[str, ProductConfig]:
    return {
        "vscode": ProductConfig(
            owner="microsoft",
            repo="vscode",
            output=Path("data/lookups/vscode-versions.json"),
            user_agent="copilot-feature-tracker/vscode-lookup",
            ide="VS Code",
        ),
        "copilot-chat": ProductConfig(
            owner="microsoft",
            repo="vscode-copilot-chat",
            output=Path("data/lookups/copilot-chat-versions.json"),
            keep_tag=True,
        ),
    }


class TrackerSettings(BaseModel):
    """Top-level settings for one run of the tracker."""

    api_base: str = "https://api.github.com"
    web_base: str = "https://github.com"
    token: str | None = None
    years_back: float = Field(2, ge=0)
    per_page: int = Field(100, ge=1, le=100)
    features_dir: Path = Path("data/features")
    backfill_surface: str = "VS Code"
    backfill_product: str = "copilot-chat"
    products: dict[str, ProductConfig] = Field(default_factory=default_products)

    @property
    def window_days(self) -> int:
        """Trailing build window in whole days, never below one."""
        return max(1, math.floor(self.years_back * 365))

    def product(self, key: str) -> ProductConfig:
        try:
            return self.products[key]
        except KeyError:
            known = ", ".join(sorted(self.products))
            raise ValueError(f"Unknown product {key!r} (known: {known})") from None


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> TrackerSettings:
    """Load settings from defaults, an optional YAML file, and the environment.

    Args:
        path: YAML file to read. Falls back to TRACKER_CONFIG; a missing
              file means defaults.
        environ: Environment mapping, os.environ if not provided.

    Returns:
        Validated TrackerSettings.

    Raises:
        ValueError: If the YAML is malformed or any value fails validation.
    """
    env = os.environ if environ is None else environ
    config_path = path or env.get("TRACKER_CONFIG")

    raw: dict = {}
    if config_path and Path(config_path).exists():
        try:
            raw = yaml.safe_load(Path(config_path).read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid tracker config in {config_path}: expected a mapping")

    if "products" in raw:
        # Entries in the file extend the built-in products rather than replace them
        products = {key: p.model_dump() for key, p in default_products().items()}
        overrides_by_key = raw["products"] or {}
        if not isinstance(overrides_by_key, dict):
            raise ValueError(f"Invalid tracker config in {config_path}: products must be a mapping")
        for key, overrides in overrides_by_key.items():
            if not isinstance(overrides or {}, dict):
                raise ValueError(
                    f"Invalid tracker config in {config_path}: product {key!r} must be a mapping"
                )
            products[key] = {**products.get(key, {}), **(overrides or {})}
        raw["products"] = products

    if env.get("GITHUB_API_URL"):
        raw["api_base"] = env["GITHUB_API_URL"]
    token = env.get("GH_TOKEN") or env.get("GITHUB_TOKEN")
    if token:
        raw["token"] = token
    if env.get("YEARS_BACK"):
        raw["years_back"] = env["YEARS_BACK"]

    try:
        return TrackerSettings.model_validate(raw)
    except Exception as exc:
        source = config_path or "environment"
        raise ValueError(f"Invalid tracker config in {source}: {exc}") from exc
