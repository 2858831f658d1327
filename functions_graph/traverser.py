"""Main traversal that runs the project analysis pipeline."""

import logging

from functions_graph.binding_enricher import enrich_bindings
from functions_graph.descriptor_reader import read_descriptors
from functions_graph.graph_mapper import (
    ACTIVITY,
    OTHER,
    FunctionCode,
    classify_functions,
    map_orchestrators_and_activities,
)
from functions_graph.host_settings import read_host_settings
from functions_graph.models import FunctionsMap, TraversalResult
from functions_graph.project_locator import locate_project
from functions_graph.proxy_reader import read_proxies_json

logger = logging.getLogger(__name__)


def enrich_dotnet_bindings(
    functions: FunctionsMap, codes: dict[str, FunctionCode]
) -> None:
    """Supplement bindings of activities and plain functions with bindings from C# code."""
    buckets = classify_functions(functions)
    for name in buckets[ACTIVITY] + buckets[OTHER]:
        found = codes.get(name)
        if found is None:
            continue
        enrich_bindings(functions[name].bindings, found.code)


async def traverse_function_project(
    project_path: str,
    *,
    publish: bool = True,
    temp_folders: list[str] | None = None,
) -> TraversalResult:
    """Traverse a Functions project and build its functions and proxies maps.

    Args:
        project_path: Local project folder or http(s) URL of a git repository
        publish: Whether to `dotnet publish` .NET in-process projects
            (otherwise function.json files are read from the host.json folder)
        temp_folders: Caller-owned list receiving every temporary folder
            created, even when the traversal fails. The folders are never
            deleted here.

    Returns:
        TraversalResult with functions, proxies and temporary folders

    Raises:
        ProjectLoadError: If cloning, locating host.json or publishing fails
    """
    if temp_folders is None:
        temp_folders = []

    logger.info(f"Starting traversal of {project_path}")
    project = await locate_project(project_path, temp_folders, publish=publish)

    functions = await read_descriptors(project)

    codes = await map_orchestrators_and_activities(
        functions, project.kind, project.project_folder, project.host_json_folder
    )

    if project.kind.is_dotnet:
        enrich_dotnet_bindings(functions, codes)

    proxies = await read_proxies_json(
        project.project_folder, project.kind, project.host_json_folder
    )

    result = TraversalResult(
        functions=functions,
        proxies=proxies,
        temp_folders=temp_folders,
        project_folder=project.project_folder,
        project_kind=project.kind,
        host_settings=read_host_settings(project.host_json_folder),
    )
    logger.info(
        f"Traversal complete: {len(functions)} functions, {len(proxies)} proxies"
    )
    return result
