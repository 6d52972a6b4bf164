"""Process-wide default model per provider.

Overrides are held in memory only and are lost on restart.
"""
import threading

DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "deepseek": "deepseek-r1",
    "claude": "claude-3.5-sonnet",
}

_overrides: dict[str, str] = {}
_lock = threading.Lock()


def get_default_model(provider: str) -> str:
    return DEFAULT_MODELS.get(provider.lower(), "")


def get_model(provider: str) -> str:
    with _lock:
        override = _overrides.get(provider.lower())
    return override or get_default_model(provider)


def set_model(provider: str, model: str) -> None:
    with _lock:
        _overrides[provider.lower()] = model


def reset() -> None:
    with _lock:
        _overrides.clear()
