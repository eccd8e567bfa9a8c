"""In-memory registry of service factories."""
from typing import Any, Callable, Dict

_REGISTRY: Dict[str, Callable[..., Any]] = {}


def bind_model(key: str, fn: Callable[..., Any]) -> None:
    """Bind a factory to a registry key."""
    _REGISTRY[key] = fn


def get_model(key: str) -> Callable[..., Any]:
    """Retrieve a factory from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


AI_SERVICE_KEY = "services.ai_evaluation"
PERSISTENCE_KEY = "services.persistence"
