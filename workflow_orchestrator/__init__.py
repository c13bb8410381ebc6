"""Workflow orchestration core: data index queries, runtime calls and availability gating."""

__version__ = "1.0.0"


def __getattr__(name):
    """Resolve ``create_app`` on demand; the helpers and services do not need FastAPI."""
    if name == "create_app":
        from .main import create_app
        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
