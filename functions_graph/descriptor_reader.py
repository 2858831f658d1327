"""Read function descriptors (function.json files) into the initial functions map."""

import asyncio
import json
import logging
import os

from functions_graph.code_locator import read_text_file
from functions_graph.models import FunctionInfo, FunctionsMap, ProjectKind
from functions_graph.project_locator import LocatedProject
from functions_graph.source_descriptors import (
    traverse_dotnet_isolated_project,
    traverse_java_project,
)

logger = logging.getLogger(__name__)

FUNCTION_JSON = "function.json"


def read_function_json(function_folder: str) -> FunctionInfo | None:
    """Read <function_folder>/function.json, if the folder has one.

    Returns:
        FunctionInfo seeded with the declared bindings, or None if the folder
        is not a function folder or its descriptor could not be parsed
    """
    function_json_path = os.path.join(function_folder, FUNCTION_JSON)
    if not os.path.isdir(function_folder) or not os.path.isfile(function_json_path):
        return None

    try:
        function_json = json.loads(read_text_file(function_json_path))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to parse {function_json_path}: {e}")
        return None

    bindings = function_json.get("bindings") if isinstance(function_json, dict) else None
    if not isinstance(bindings, list):
        logger.warning(f"No bindings array in {function_json_path}")
        return None

    return FunctionInfo(bindings=[b for b in bindings if isinstance(b, dict)])


async def read_function_jsons(functions_folder: str) -> FunctionsMap:
    """Read function.json files from the immediate subfolders of functions_folder.

    Subfolders are read concurrently. A malformed descriptor is logged and
    skipped; the rest of the project is still read.
    """
    try:
        names = sorted(os.listdir(functions_folder))
    except OSError as e:
        logger.warning(f"Failed to list {functions_folder}: {e}")
        return {}

    infos = await asyncio.gather(
        *(
            asyncio.to_thread(read_function_json, os.path.join(functions_folder, name))
            for name in names
        )
    )

    functions: FunctionsMap = {
        name: info for name, info in zip(names, infos) if info is not None
    }
    logger.info(f"Read {len(functions)} function.json files from {functions_folder}")
    return functions


async def read_descriptors(project: LocatedProject) -> FunctionsMap:
    """Produce the initial functions map for a located project.

    Args:
        project: Project returned by locate_project

    Returns:
        Functions map with declared bindings; edges are filled in later
    """
    if project.kind is ProjectKind.DOTNET_ISOLATED:
        return await traverse_dotnet_isolated_project(project.project_folder)
    if project.kind is ProjectKind.JAVA:
        return await traverse_java_project(project.project_folder)
    # Script-based projects keep function.json next to the code; in-process .NET
    # projects get them generated into the publish output
    return await read_function_jsons(project.functions_folder)
