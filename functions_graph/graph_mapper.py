"""Match orchestrators, activities, entities and their callers by scanning source code."""

import asyncio
import logging
import os
import re
from dataclasses import dataclass

from functions_graph.code_locator import (
    extract_bracketed_block,
    find_first_match,
    offset_to_line_number,
)
from functions_graph.models import (
    ACTIVITY_TRIGGER,
    ENTITY_TRIGGER,
    ORCHESTRATION_TRIGGER,
    FunctionInfo,
    FunctionsMap,
    ProjectKind,
    SignalSource,
)
from functions_graph.patterns import (
    CALL_ACTIVITY,
    CALL_SUB_ORCHESTRATOR,
    RAISE_EVENT,
    SIGNAL_ENTITY,
    START_NEW_ORCHESTRATION,
    calls_continue_as_new,
    function_name_pattern,
    get_event_names,
)
from functions_graph.source_descriptors import (
    DOTNET_SOURCE_FILE_REGEX,
    JAVA_SOURCE_FILE_REGEX,
)

logger = logging.getLogger(__name__)

# Entry point files of script-based functions, looked up in <host.json folder>/<function name>/
SCRIPT_FILE_REGEX = re.compile(
    r"^(index\.ts|index\.js|__init__\.py|run\.csx|run\.ps1)$", re.IGNORECASE
)

ORCHESTRATOR = "orchestrator"
ACTIVITY = "activity"
ENTITY = "entity"
OTHER = "other"

# Checked in this order; the first trigger type found decides the bucket
CLASSIFICATION_ORDER = (
    (ORCHESTRATION_TRIGGER, ORCHESTRATOR),
    (ACTIVITY_TRIGGER, ACTIVITY),
    (ENTITY_TRIGGER, ENTITY),
)


@dataclass
class FunctionCode:
    """A function's source code and where it was found."""

    name: str
    code: str
    file_path: str
    source_offset: int
    line_number: int


def classify_function(info: FunctionInfo) -> str:
    """Put a function into exactly one of: orchestrator, activity, entity, other."""
    for binding_type, bucket in CLASSIFICATION_ORDER:
        if info.has_binding_type(binding_type):
            return bucket
    return OTHER


def classify_functions(functions: FunctionsMap) -> dict[str, list[str]]:
    """Group function names by bucket, keeping map order within each bucket."""
    buckets: dict[str, list[str]] = {ORCHESTRATOR: [], ACTIVITY: [], ENTITY: [], OTHER: []}
    for name, info in functions.items():
        buckets[classify_function(info)].append(name)
    return buckets


def locate_function_code(
    name: str, kind: ProjectKind, project_folder: str, host_json_folder: str
) -> FunctionCode | None:
    """Find a function's code.

    Script-based functions are read whole from their folder's entry point file.
    .NET and Java functions are found by their declaration attribute/annotation,
    and their code runs from there to the end of the method body.
    """
    pattern = function_name_pattern(kind)

    if pattern is None:
        function_folder = os.path.join(host_json_folder, name)
        if not os.path.isdir(function_folder):
            return None
        match = find_first_match(function_folder, SCRIPT_FILE_REGEX, True)
        if match is None:
            return None
        return FunctionCode(
            name=name, code=match.code, file_path=match.file_path, source_offset=0, line_number=1
        )

    if kind is ProjectKind.JAVA:
        file_regex, body_required_chars = JAVA_SOURCE_FILE_REGEX, "\n"
    else:
        file_regex, body_required_chars = DOTNET_SOURCE_FILE_REGEX, " \n"

    match = find_first_match(project_folder, file_regex, True, pattern.compile(name))
    if match is None:
        return None

    block = extract_bracketed_block(
        match.code, match.pos + match.length, "{", "}", body_required_chars
    )
    code = block.code if block else match.code[match.pos :]
    return FunctionCode(
        name=name,
        code=code,
        file_path=match.file_path,
        source_offset=match.pos,
        line_number=offset_to_line_number(match.code, match.pos),
    )


async def get_functions_and_their_codes(
    names: list[str], kind: ProjectKind, project_folder: str, host_json_folder: str
) -> dict[str, FunctionCode]:
    """Look up code for many functions concurrently. Functions not found are left out."""
    results = await asyncio.gather(
        *(
            asyncio.to_thread(
                locate_function_code, name, kind, project_folder, host_json_folder
            )
            for name in names
        )
    )
    return {code.name: code for code in results if code is not None}


def _code_of(codes: dict[str, FunctionCode], name: str) -> str | None:
    found = codes.get(name)
    return found.code if found else None


def map_orchestrator(
    functions: FunctionsMap,
    orchestrator: str,
    buckets: dict[str, list[str]],
    codes: dict[str, FunctionCode],
) -> None:
    """Record every edge that involves one orchestrator."""
    orchestrator_code = _code_of(codes, orchestrator)

    # Functions starting this orchestrator
    for func in buckets[OTHER]:
        if START_NEW_ORCHESTRATION.matches(_code_of(codes, func), orchestrator):
            functions[orchestrator].is_called_by.append(func)

    # Suborchestrators called by this orchestrator
    for sub_orchestrator in buckets[ORCHESTRATOR]:
        if sub_orchestrator == orchestrator:
            continue
        if CALL_SUB_ORCHESTRATOR.matches(orchestrator_code, sub_orchestrator):
            functions[sub_orchestrator].is_called_by.append(orchestrator)

    # Activities called by this orchestrator
    for activity in buckets[ACTIVITY]:
        if CALL_ACTIVITY.matches(orchestrator_code, activity):
            functions[activity].is_called_by.append(orchestrator)

    if calls_continue_as_new(orchestrator_code):
        functions[orchestrator].is_called_by_itself = True

    # Functions raising events this orchestrator waits for
    for event_name in get_event_names(orchestrator_code):
        for func in buckets[OTHER]:
            if RAISE_EVENT.matches(_code_of(codes, func), event_name):
                functions[orchestrator].is_signalled_by.append(
                    SignalSource(name=func, signal_name=event_name)
                )


def map_entity(
    functions: FunctionsMap,
    entity: str,
    buckets: dict[str, list[str]],
    codes: dict[str, FunctionCode],
) -> None:
    """Record every function that signals this entity."""
    for func in buckets[OTHER]:
        if SIGNAL_ENTITY.matches(_code_of(codes, func), entity):
            functions[entity].is_called_by.append(func)


def attach_locations(functions: FunctionsMap, codes: dict[str, FunctionCode]) -> None:
    """Copy file path, position and line number of located code into the map."""
    for name, found in codes.items():
        info = functions[name]
        info.file_path = found.file_path
        info.source_offset = found.source_offset
        info.line_number = found.line_number


async def map_orchestrators_and_activities(
    functions: FunctionsMap,
    kind: ProjectKind,
    project_folder: str,
    host_json_folder: str,
) -> dict[str, FunctionCode]:
    """Fill in call/signal edges and self-recursion flags in functions.

    Edge lists are append-only: a caller is recorded once per matching
    target, with no deduplication.

    Args:
        functions: Functions map from the descriptor stage (modified in place)
        kind: Project kind, decides how code is looked up
        project_folder: Root of the project sources
        host_json_folder: Folder containing host.json (script-based lookups)

    Returns:
        Code found for each function, by function name
    """
    buckets = classify_functions(functions)
    logger.info(
        f"Classified functions: {len(buckets[ORCHESTRATOR])} orchestrators, "
        f"{len(buckets[ACTIVITY])} activities, {len(buckets[ENTITY])} entities, "
        f"{len(buckets[OTHER])} other"
    )

    codes = await get_functions_and_their_codes(
        list(functions), kind, project_folder, host_json_folder
    )
    missing = [name for name in functions if name not in codes]
    if missing:
        logger.info(f"No code found for: {', '.join(missing)}")

    for orchestrator in buckets[ORCHESTRATOR]:
        map_orchestrator(functions, orchestrator, buckets, codes)

    for entity in buckets[ENTITY]:
        map_entity(functions, entity, buckets, codes)

    attach_locations(functions, codes)
    return codes
