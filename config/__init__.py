"""Configuration package for the interview assistant."""
from .registry import AI_SERVICE_KEY, PERSISTENCE_KEY, bind_model, get_model, unbind_model
from .routes import AppConfig, LlmRoute, load_app_registry, load_config, resolve_registry
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_app_registry",
    "load_config",
    "resolve_registry",
    "AI_SERVICE_KEY",
    "PERSISTENCE_KEY",
    "bind_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
