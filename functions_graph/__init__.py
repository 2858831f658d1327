"""Static analyzer that maps the call graph of Azure Functions projects."""

from functions_graph.models import (
    FunctionInfo,
    HostSettings,
    ProjectKind,
    ProxyInfo,
    SignalSource,
    TraversalResult,
)
from functions_graph.project_locator import ProjectLoadError
from functions_graph.traverser import traverse_function_project

__all__ = [
    # Models
    "FunctionInfo",
    "HostSettings",
    "ProjectKind",
    "ProxyInfo",
    "SignalSource",
    "TraversalResult",
    # Errors
    "ProjectLoadError",
    # Traversal
    "traverse_function_project",
]
