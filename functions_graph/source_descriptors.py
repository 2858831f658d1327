"""Build the initial functions map for projects that declare functions in code.

.NET isolated worker and Java projects have no function.json files, so
functions are found by scanning sources for [Function("Name")] attributes
or @FunctionName("Name") annotations and reading bindings off the
declarations that follow.
"""

import asyncio
import logging
import re
from dataclasses import dataclass

from functions_graph.binding_parser import try_extract_bindings
from functions_graph.code_locator import (
    extract_bracketed_block,
    find_first_match,
    offset_to_line_number,
    read_text_file,
    walk_files,
)
from functions_graph.models import (
    DURABLE_TRIGGER_TYPES,
    Binding,
    FunctionInfo,
    FunctionsMap,
)

logger = logging.getLogger(__name__)

DOTNET_SOURCE_FILE_REGEX = re.compile(r".+\.(f|c)s$", re.IGNORECASE)
JAVA_SOURCE_FILE_REGEX = re.compile(r".+\.java$", re.IGNORECASE)

# [Function("Name")], [FunctionName(nameof(Name))], [<Function("Name")>]
DOTNET_FUNCTION_ATTRIBUTE_REGEX = re.compile(
    r"\[\s*<?\s*Function(?:Name)?(?:Attribute)?\s*\(\s*(?P<args>[\"\w\s.()-]+?)\s*\)\s*>?\s*\]"
)
# @FunctionName("Name"), @FunctionName(value = "Name")
JAVA_FUNCTION_ANNOTATION_REGEX = re.compile(
    r"@\s*FunctionName\s*\(\s*(?:(?:value|name)\s*=\s*)?\"(?P<args>[^\"]+)\"\s*\)"
)

# public static async Task<MyOutputType> Run(
FUNCTION_RETURN_TYPE_REGEX = re.compile(
    r"public\s+(?:(?:static|async|virtual|override)\s+)*(?:(?:Value)?Task\s*<\s*)?(?P<type>[\w.]+)"
)
NON_CLASS_RETURN_TYPES = frozenset({"void", "Task", "ValueTask", "string", "int", "bool"})


@dataclass
class DeclaredFunction:
    """A function declaration found in source code."""

    name: str
    file_path: str
    source_offset: int
    line_number: int
    declaration: str


def parse_function_name(attribute_args: str) -> str:
    """Get a function name out of attribute arguments.

    "Name" -> Name, nameof(Name) -> Name, nameof(Class.Name) -> Name, Constants.Name -> Name
    """
    literal = re.search(r'"([^"]+)"', attribute_args)
    if literal:
        return literal.group(1)
    stripped = re.sub(r"nameof\s*\(|[()\s]", "", attribute_args)
    return stripped.split(".")[-1]


def find_declared_functions(
    root_dir: str,
    file_name_regex: re.Pattern,
    declaration_regex: re.Pattern,
    body_required_chars: str,
) -> list[DeclaredFunction]:
    """Scan source files for function declarations.

    Args:
        root_dir: Folder to scan
        file_name_regex: Which files to read
        declaration_regex: Regex with an "args" group holding the function name
        body_required_chars: Passed to extract_bracketed_block to tell method
            bodies apart from bracketed attribute arguments

    Returns:
        Declarations in file walk order
    """
    result = []
    for file_path in walk_files(root_dir, file_name_regex):
        try:
            code = read_text_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {file_path}: {e}")
            continue

        for match in declaration_regex.finditer(code):
            name = parse_function_name(match.group("args"))
            block = extract_bracketed_block(
                code, match.end(), "{", "}", body_required_chars
            )
            declaration = block.declaration if block else code[match.end() :]
            result.append(
                DeclaredFunction(
                    name=name,
                    file_path=file_path,
                    source_offset=match.start(),
                    line_number=offset_to_line_number(code, match.start()),
                    declaration=declaration,
                )
            )
            logger.debug(f"Found function {name} in {file_path}")

    return result


def extract_output_bindings(project_folder: str, declaration: str) -> list[Binding]:
    """Read output bindings declared on the properties of a function's return type.

    Isolated worker functions with several outputs return a POCO whose
    properties carry [XxxOutput] attributes.
    """
    match = FUNCTION_RETURN_TYPE_REGEX.search(declaration)
    if not match:
        return []
    type_name = match.group("type").split(".")[-1]
    if type_name in NON_CLASS_RETURN_TYPES:
        return []

    class_regex = re.compile(rf"(?:class|record)\s+{re.escape(type_name)}(?![\w])")
    class_match = find_first_match(
        project_folder, DOTNET_SOURCE_FILE_REGEX, True, class_regex
    )
    if class_match is None:
        return []

    block = extract_bracketed_block(
        class_match.code, class_match.pos + class_match.length, "{", "}"
    )
    if block is None:
        return []

    return [b for b in try_extract_bindings(block.body) if b.get("direction") == "out"]


def _functions_from_declarations(
    declared: list[DeclaredFunction], project_folder: str, with_output_types: bool
) -> FunctionsMap:
    functions: FunctionsMap = {}
    for func in declared:
        bindings = try_extract_bindings(func.declaration)

        if with_output_types and not any(
            b["type"] in DURABLE_TRIGGER_TYPES for b in bindings
        ):
            bindings += extract_output_bindings(project_folder, func.declaration)

        functions[func.name] = FunctionInfo(
            bindings=bindings,
            file_path=func.file_path,
            source_offset=func.source_offset,
            line_number=func.line_number,
        )
    return functions


async def traverse_dotnet_isolated_project(project_folder: str) -> FunctionsMap:
    """Build the functions map of a .NET isolated worker project from its sources."""
    declared = await asyncio.to_thread(
        find_declared_functions,
        project_folder,
        DOTNET_SOURCE_FILE_REGEX,
        DOTNET_FUNCTION_ATTRIBUTE_REGEX,
        " \n",
    )
    functions = await asyncio.to_thread(
        _functions_from_declarations, declared, project_folder, True
    )
    logger.info(f"Found {len(functions)} functions in .NET isolated project")
    return functions


async def traverse_java_project(project_folder: str) -> FunctionsMap:
    """Build the functions map of a Java project from its sources."""
    # Annotation arguments like methods = {HttpMethod.GET, HttpMethod.POST} contain
    # spaces, so only multi-line groups are taken for method bodies
    declared = await asyncio.to_thread(
        find_declared_functions,
        project_folder,
        JAVA_SOURCE_FILE_REGEX,
        JAVA_FUNCTION_ANNOTATION_REGEX,
        "\n",
    )
    functions = _functions_from_declarations(declared, project_folder, False)
    logger.info(f"Found {len(functions)} functions in Java project")
    return functions
