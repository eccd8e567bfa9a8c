"""LLM route configuration loaded from the app config file."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    temperature: float | None = None
    max_tokens: int | None = None
    enforce_json: bool = True


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_registry(cfg: AppConfig, targets: list[str]) -> Dict[str, LlmRoute]:
    """Map each logical target to its configured route."""

    resolved: Dict[str, LlmRoute] = {}
    for target in targets:
        if target not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{target}'")
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{target}'")
        resolved[target] = cfg.llm_routes[route_id]
    return resolved


def load_app_registry(path: Path, targets: list[str]) -> Dict[str, LlmRoute]:
    """Load configuration and resolve the requested targets."""

    cfg = load_config(path)
    return resolve_registry(cfg, targets)
