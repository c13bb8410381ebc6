"""Business logic service layer."""

from workflow_orchestrator.services.data_index import DataIndexService  # noqa: F401
from workflow_orchestrator.services.orchestrator import OrchestratorService  # noqa: F401
from workflow_orchestrator.services.runtime_client import SonataFlowService  # noqa: F401
from workflow_orchestrator.services.workflow_api import WorkflowApiService  # noqa: F401
from workflow_orchestrator.services.workflow_cache import WorkflowCacheService  # noqa: F401
