"""Data models for traversal output."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Bindings are kept as plain dicts so that descriptor fields pass through untouched.
# Every binding has at least a "type" and optionally a "direction" ("in" / "out").
Binding = dict[str, Any]

ORCHESTRATION_TRIGGER = "orchestrationTrigger"
ACTIVITY_TRIGGER = "activityTrigger"
ENTITY_TRIGGER = "entityTrigger"

DURABLE_TRIGGER_TYPES = (ORCHESTRATION_TRIGGER, ACTIVITY_TRIGGER, ENTITY_TRIGGER)


class ProjectKind(Enum):
    """Runtime flavor of a Functions project. Determined once per traversal."""

    DOTNET_IN_PROCESS = "dotNetInProcess"
    DOTNET_ISOLATED = "dotNetIsolated"
    JAVA = "java"
    SCRIPT_BASED = "scriptBased"

    @property
    def is_dotnet(self) -> bool:
        return self in (ProjectKind.DOTNET_IN_PROCESS, ProjectKind.DOTNET_ISOLATED)


@dataclass
class SignalSource:
    """A function that raises an event some orchestrator is waiting for."""

    name: str
    signal_name: str


@dataclass
class FunctionInfo:
    """Everything known about a single function."""

    bindings: list[Binding] = field(default_factory=list)
    is_called_by: list[str] = field(default_factory=list)
    is_signalled_by: list[SignalSource] = field(default_factory=list)
    is_called_by_itself: bool = False
    file_path: str | None = None
    source_offset: int | None = None
    line_number: int | None = None

    def has_binding_type(self, binding_type: str) -> bool:
        return any(b.get("type") == binding_type for b in self.bindings)

    def to_dict(self) -> dict:
        """Convert to dictionary, excluding unset location fields."""
        result = {
            "bindings": self.bindings,
            "isCalledBy": self.is_called_by,
            "isSignalledBy": [
                {"name": s.name, "signalName": s.signal_name}
                for s in self.is_signalled_by
            ],
            "isCalledByItself": self.is_called_by_itself,
        }
        if self.file_path is not None:
            result["filePath"] = self.file_path
        if self.source_offset is not None:
            result["sourceOffset"] = self.source_offset
        if self.line_number is not None:
            result["lineNumber"] = self.line_number
        return result


@dataclass
class ProxyInfo:
    """A proxy entry from proxies.json plus where it was found."""

    fields: dict[str, Any]
    file_path: str
    source_offset: int | None = None
    line_number: int | None = None
    warning_not_registered_in_project_file: bool = False

    def to_dict(self) -> dict:
        result = dict(self.fields)
        result["filePath"] = self.file_path
        if self.source_offset is not None:
            result["sourceOffset"] = self.source_offset
            result["lineNumber"] = self.line_number
        result["warningNotRegisteredInProjectFile"] = (
            self.warning_not_registered_in_project_file
        )
        return result


@dataclass
class HostSettings:
    """Durable Task settings read from host.json."""

    hub_name: str = ""
    storage_provider_type: str = "default"  # "default" or "mssql"
    connection_string_name: str = ""


FunctionsMap = dict[str, FunctionInfo]
ProxiesMap = dict[str, ProxyInfo]


@dataclass
class TraversalResult:
    """Complete result of traversing a Functions project.

    temp_folders lists directories created while traversing (git clones,
    publish output). They are never deleted here; the caller owns cleanup.
    """

    functions: FunctionsMap
    proxies: ProxiesMap
    temp_folders: list[str]
    project_folder: str
    project_kind: ProjectKind | None = None
    host_settings: HostSettings | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "functions": {name: f.to_dict() for name, f in self.functions.items()},
            "proxies": {name: p.to_dict() for name, p in self.proxies.items()},
            "tempFolders": self.temp_folders,
            "projectFolder": self.project_folder,
        }
        if self.project_kind is not None:
            result["projectKind"] = self.project_kind.value
        if self.host_settings is not None:
            result["hostSettings"] = {
                "hubName": self.host_settings.hub_name,
                "storageProviderType": self.host_settings.storage_provider_type,
                "connectionStringName": self.host_settings.connection_string_name,
            }
        return result

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
