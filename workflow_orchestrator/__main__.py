"""Run the orchestrator API with ``python -m workflow_orchestrator``."""

import uvicorn

from workflow_orchestrator.core.config import get_settings

if __name__ == "__main__":  # pragma: no cover
    settings = get_settings()
    # Logging is configured by create_app; keep uvicorn from installing its own handlers.
    uvicorn.run("workflow_orchestrator.main:app", host=settings.http_host, port=settings.http_port, log_config=None)
