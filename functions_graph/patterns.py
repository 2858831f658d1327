"""Recognize Durable Functions call shapes in raw source code via pattern matching.

Each pattern family is a list of textual call shapes (C#, F#, JavaScript,
TypeScript, Python, Java spellings, with and without retry/async variants)
that all reference the same literal target name. Keywords are matched
case-insensitively, target names case-sensitively and never partially.
"""

import functools
import logging
import re

from functions_graph.models import ProjectKind

logger = logging.getLogger(__name__)

# Placeholders substituted with the escaped target name
NAME = "%NAME%"
INTERFACE_NAME = "%INTERFACE%"

# A name passed as an argument: "Name", 'Name', `Name`, nameof(Name), nameof(Class.Name),
# Class.Name or a bare identifier (e.g. Python function references)
NAME_PREFIX = r"""(?:["'`]|nameof\s*\(\s*(?:[\w.]*\.)?|[\w.]+\.\s*)?"""
# Same, but only quoted or nameof() names
QUOTED_NAME_PREFIX = r"""(?:["'`]|nameof\s*\(\s*(?:[\w.]*\.)?)"""
# Optional generic arguments, e.g. CallActivityAsync<List<string>>
GENERIC_ARGS = r"(?:\s*<[\w.\-\[\]<>,\s]+>)?"
# What may follow the name: closing quote, closing paren or the next argument
NAME_SUFFIX = r"""\s*["'`),]"""
# One leading call argument, possibly holding a nested call, e.g. GetId(req)
LEADING_ARGUMENT = r"(?:[^,()]|\([^()]*\))*,\s*"

PATTERN_FAMILIES = {
    "call_activity": [
        # CallActivityAsync<T>("Name"), callActivityWithRetry("Name", ...), call_activity(name)
        r"(?i:call_?activity(?:_?with_?retry)?(?:_?async)?)"
        + GENERIC_ARGS
        + r"\s*\(\s*"
        + NAME_PREFIX
        + NAME
        + NAME_SUFFIX,
    ],
    "call_sub_orchestrator": [
        # CallSubOrchestratorWithRetryAsync<T>(nameof(Name)), call_sub_orchestrator("Name")
        r"(?i:call_?sub_?orchestrator(?:_?with_?retry)?(?:_?async)?)"
        + GENERIC_ARGS
        + r"\s*\(\s*"
        + NAME_PREFIX
        + NAME
        + NAME_SUFFIX,
    ],
    "start_new_orchestration": [
        # StartNewAsync("Name"), startNew("Name"), start_new("Name"),
        # ScheduleNewOrchestrationInstanceAsync(nameof(Name)), scheduleNewOrchestrationInstance("Name")
        r"(?i:start_?new(?:_?async)?|schedule_?new_?orchestration_?instance(?:_?async)?)"
        + GENERIC_ARGS
        + r"\s*\(\s*"
        + NAME_PREFIX
        + NAME
        + NAME_SUFFIX,
    ],
    "signal_entity": [
        # new EntityId("Name", key), df.EntityId("Name", key), new EntityInstanceId(nameof(Name), key)
        r"(?<![\w])Entity(?:Instance)?Id\s*\(\s*" + NAME_PREFIX + NAME + NAME_SUFFIX,
        # SignalEntityAsync<ICounter>(...), CallEntityAsync<Counter>(...)
        r"(?i:signal_?entity(?:_?async)?|call_?entity(?:_?async)?)\s*<\s*"
        + INTERFACE_NAME
        + r"\s*>",
    ],
    "raise_event": [
        # RaiseEventAsync(instanceId, "Name", data), raiseEvent(id, "Name"), raise_event(id, "Name"),
        # RaiseEventAsync(GetId(req), nameof(Name))
        r"(?i:raise_?event(?:_?async)?)"
        + GENERIC_ARGS
        + r"\s*\(\s*"
        + LEADING_ARGUMENT
        + NAME_PREFIX
        + NAME
        + NAME_SUFFIX,
        # Instance-less raiseEvent("Name", data), only with a quoted or nameof() name
        r"(?i:raise_?event(?:_?async)?)"
        + GENERIC_ARGS
        + r"\s*\(\s*"
        + QUOTED_NAME_PREFIX
        + NAME
        + NAME_SUFFIX,
    ],
    "dotnet_function_name": [
        # [FunctionName("Name")], [Function(nameof(Name))], [<FunctionName("Name")>]
        r"(?<![\w])Function(?:Name)?(?:Attribute)?\s*\(\s*"
        + NAME_PREFIX
        + NAME
        + r"""\s*["'`)]""",
    ],
    "java_function_name": [
        # @FunctionName("Name"), @FunctionName(value = "Name")
        r"@\s*FunctionName\s*\(\s*(?:(?:value|name)\s*=\s*)?"
        + NAME_PREFIX
        + NAME
        + r"""\s*[")]""",
    ],
}

# Orchestrator restarting itself: ContinueAsNew(...), continueAsNew(...), continue_as_new(...)
CONTINUE_AS_NEW_REGEX = re.compile(r"(?i:continue_?as_?new)\s*\(")

# WaitForExternalEvent<T>("Name"), waitForExternalEvent("Name"), wait_for_external_event(name)
WAIT_FOR_EXTERNAL_EVENT_REGEX = re.compile(
    r"(?i:wait_?for_?external_?event(?:_?async)?)"
    r"(?:\s*<[\s\w,.\-\[\]()<>]+>)?"
    r"\s*\(\s*(?:nameof\s*\(\s*(?:[\w.]*\.)?|[\"'`]|[\w.]+\.\s*)?"
    r"(?P<event>[\w.-]+)"
    r"\s*[\"'`),]"
)


def _name_token(target: str) -> str:
    return r"(?<![\w])" + re.escape(target) + r"(?![\w])"


def _interface_token(target: str) -> str:
    return r"(?<![\w])I?" + re.escape(target) + r"(?![\w])"


@functools.lru_cache(maxsize=1024)
def _compile_shapes(family: str, target: str) -> re.Pattern:
    alternatives = [
        shape.replace(INTERFACE_NAME, _interface_token(target)).replace(
            NAME, _name_token(target)
        )
        for shape in PATTERN_FAMILIES[family]
    ]
    return re.compile("|".join(f"(?:{a})" for a in alternatives))


class CallPattern:
    """A family of call shapes, matched against code for a given target name."""

    def __init__(self, family: str):
        self.family = family

    def compile(self, target: str) -> re.Pattern:
        """Build the regex recognizing any shape of this family for target."""
        return _compile_shapes(self.family, target)

    def search(self, code: str | None, target: str) -> re.Match | None:
        if not code:
            return None
        return self.compile(target).search(code)

    def matches(self, code: str | None, target: str) -> bool:
        """Check whether code references target in one of this family's shapes."""
        matched = self.search(code, target) is not None
        if matched:
            logger.debug(f"'{self.family}' matched '{target}'")
        return matched

    def __repr__(self) -> str:
        return f"CallPattern({self.family!r})"


CALL_ACTIVITY = CallPattern("call_activity")
CALL_SUB_ORCHESTRATOR = CallPattern("call_sub_orchestrator")
START_NEW_ORCHESTRATION = CallPattern("start_new_orchestration")
SIGNAL_ENTITY = CallPattern("signal_entity")
RAISE_EVENT = CallPattern("raise_event")
DOTNET_FUNCTION_NAME = CallPattern("dotnet_function_name")
JAVA_FUNCTION_NAME = CallPattern("java_function_name")


def calls_continue_as_new(code: str | None) -> bool:
    """Check whether an orchestrator restarts itself."""
    return bool(code) and CONTINUE_AS_NEW_REGEX.search(code) is not None


def get_event_names(orchestrator_code: str | None) -> list[str]:
    """Extract names of all external events an orchestrator is waiting for.

    Args:
        orchestrator_code: Source code of the orchestrator

    Returns:
        Event names in order of appearance (duplicates preserved)
    """
    if not orchestrator_code:
        return []
    return [
        match.group("event")
        for match in WAIT_FOR_EXTERNAL_EVENT_REGEX.finditer(orchestrator_code)
    ]


def function_name_pattern(kind: ProjectKind) -> CallPattern | None:
    """Return the pattern that anchors a function's declaration for this project kind.

    Script-based projects keep each function in its own folder, so they need no anchor.
    """
    if kind.is_dotnet:
        return DOTNET_FUNCTION_NAME
    if kind is ProjectKind.JAVA:
        return JAVA_FUNCTION_NAME
    return None
