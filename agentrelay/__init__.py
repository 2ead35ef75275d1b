"""agentrelay: phase-pipeline orchestration of remote A2A agents."""

from .client import RemoteAgentClient
from .config import RelayConfig, load_config
from .contracts import AsyncTask, OrchestrationRequest, WorkflowExecution, WorkflowStep
from .orchestrator import Orchestrator
from .pipeline import AgentCall, Phase, PhaseContext, Pipeline
from .recorder import WorkflowExecutionRecorder
from .registry import TaskRegistry

__version__ = "0.1.0"
__all__ = [
    "AgentCall",
    "AsyncTask",
    "OrchestrationRequest",
    "Orchestrator",
    "Phase",
    "PhaseContext",
    "Pipeline",
    "RelayConfig",
    "RemoteAgentClient",
    "TaskRegistry",
    "WorkflowExecution",
    "WorkflowExecutionRecorder",
    "WorkflowStep",
    "load_config",
]
