"""In-memory registry for workflow collaborators."""
from typing import Any, Dict

_REGISTRY: Dict[str, Any] = {}


def bind_model(key: str, impl: Any) -> None:
    """Bind a collaborator implementation to a registry key."""
    _REGISTRY[key] = impl


def get_model(key: str) -> Any:
    """Retrieve a collaborator from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


def find_model(key: str) -> Any:
    """Return the bound collaborator or ``None``."""
    return _REGISTRY.get(key)


def unbind_model(key: str) -> None:
    """Remove a binding if present."""
    _REGISTRY.pop(key, None)


TEXT_GENERATOR_KEY = "models.text_generator"
QUOTA_SERVICE_KEY = "services.quota"
EMBEDDING_INDEX_KEY = "services.embedding_index"
