"""Extract bindings declared as attributes (C#, F#) or annotations (Java) in source code."""

import logging
import re

from functions_graph.code_locator import extract_bracketed_block
from functions_graph.models import Binding

logger = logging.getLogger(__name__)

# [QueueTrigger(...)], [return: Queue(...)], [<Blob(...)>], @HttpTrigger(...)
BINDING_ATTRIBUTE_REGEX = re.compile(r"(\[|@)\s*(<)?\s*(return\s*:)?\s*(\w+)")

# Parameter declared right after the attribute that receives output:
# ] out string msg, ] ICollector<T> items, ] IAsyncCollector<T> items
IS_OUT_REGEX = re.compile(r"\s*>?\s*\]\s*(?:out\s|I(?:Async)?Collector\b)")

STRING_LITERAL_REGEX = re.compile(r'"([^"]*)"')
NAMED_ARGUMENT_REGEX = re.compile(r'(\w+)\s*=\s*"([^"]*)"')
JAVA_HTTP_METHOD_REGEX = re.compile(r"HttpMethod\s*\.\s*(\w+)")

HTTP_METHODS = (
    "get",
    "head",
    "post",
    "put",
    "delete",
    "connect",
    "options",
    "trace",
    "patch",
)

# Attribute name -> (binding type, direction). A None direction means "in",
# unless the attribute targets the return value or an out/collector parameter.
BINDING_ATTRIBUTES = {
    # Durable Functions
    "OrchestrationTrigger": ("orchestrationTrigger", "in"),
    "DurableOrchestrationTrigger": ("orchestrationTrigger", "in"),
    "ActivityTrigger": ("activityTrigger", "in"),
    "DurableActivityTrigger": ("activityTrigger", "in"),
    "EntityTrigger": ("entityTrigger", "in"),
    "DurableEntityTrigger": ("entityTrigger", "in"),
    "DurableClient": ("durableClient", "in"),
    "DurableClientInput": ("durableClient", "in"),
    "OrchestrationClient": ("orchestrationClient", "in"),
    # HTTP and timers
    "HttpTrigger": ("httpTrigger", "in"),
    "TimerTrigger": ("timerTrigger", "in"),
    # Storage
    "QueueTrigger": ("queueTrigger", "in"),
    "Queue": ("queue", "out"),
    "BlobTrigger": ("blobTrigger", "in"),
    "Blob": ("blob", None),
    "Table": ("table", None),
    # Cosmos DB
    "CosmosDBTrigger": ("cosmosDBTrigger", "in"),
    "CosmosDB": ("cosmosDB", None),
    # Messaging
    "ServiceBusTrigger": ("serviceBusTrigger", "in"),
    "ServiceBusQueueTrigger": ("serviceBusTrigger", "in"),
    "ServiceBusTopicTrigger": ("serviceBusTrigger", "in"),
    "ServiceBus": ("serviceBus", "out"),
    "ServiceBusQueueOutput": ("serviceBus", "out"),
    "ServiceBusTopicOutput": ("serviceBus", "out"),
    "EventHubTrigger": ("eventHubTrigger", "in"),
    "EventHub": ("eventHub", "out"),
    "EventGridTrigger": ("eventGridTrigger", "in"),
    "EventGrid": ("eventGrid", "out"),
    "RabbitMQTrigger": ("rabbitMQTrigger", "in"),
    "RabbitMQ": ("rabbitMQ", "out"),
    # SignalR
    "SignalRTrigger": ("signalRTrigger", "in"),
    "SignalRConnectionInfo": ("signalRConnectionInfo", "in"),
    "SignalR": ("signalR", "out"),
}

# Binding family (type without "Trigger") -> names of its positional string arguments
POSITIONAL_PARAMS = {
    "queue": ["queueName"],
    "blob": ["path"],
    "table": ["tableName"],
    "cosmosDB": ["databaseName", "collectionName"],
    "eventHub": ["eventHubName"],
    "signalR": ["hubName"],
    "signalRConnectionInfo": ["hubName"],
    "rabbitMQ": ["queueName"],
    "timer": ["schedule"],
}

# Named arguments worth carrying into the binding
KNOWN_NAMED_PARAMS = frozenset(
    {
        "path",
        "queueName",
        "topicName",
        "subscriptionName",
        "eventHubName",
        "hubName",
        "tableName",
        "databaseName",
        "collectionName",
        "containerName",
        "schedule",
        "route",
        "connection",
    }
)


def _lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def resolve_binding_attribute(attribute_name: str) -> tuple[str, str | None] | None:
    """Map an attribute/annotation name to its binding type and fixed direction.

    Known attributes come from BINDING_ATTRIBUTES. Unknown ones are recognized by
    their suffix: XxxTrigger -> xxxTrigger (in), XxxInput -> xxx (in),
    XxxOutput -> xxx (out). Anything else is not a binding.
    """
    if attribute_name.endswith("Attribute"):
        attribute_name = attribute_name[: -len("Attribute")]

    if attribute_name in BINDING_ATTRIBUTES:
        return BINDING_ATTRIBUTES[attribute_name]

    for suffix, direction in (("Input", "in"), ("Output", "out")):
        base = attribute_name[: -len(suffix)]
        if attribute_name.endswith(suffix) and base:
            if base in BINDING_ATTRIBUTES:
                return BINDING_ATTRIBUTES[base][0], direction
            return _lower_first(base), direction

    if attribute_name.endswith("Trigger") and len(attribute_name) > len("Trigger"):
        return _lower_first(attribute_name), "in"

    return None


def _binding_family(binding_type: str) -> str:
    if binding_type.endswith("Trigger"):
        return binding_type[: -len("Trigger")]
    return binding_type


def _extract_params(binding: Binding, attribute_args: str) -> None:
    """Copy well-known attribute arguments into the binding."""
    named = {
        _lower_first(key): value
        for key, value in NAMED_ARGUMENT_REGEX.findall(attribute_args)
    }
    positional_text = NAMED_ARGUMENT_REGEX.sub("", attribute_args)
    positional = STRING_LITERAL_REGEX.findall(positional_text)

    family = _binding_family(binding["type"])

    if family == "http":
        methods = [p.lower() for p in positional if p.lower() in HTTP_METHODS]
        methods += [
            m.lower()
            for m in JAVA_HTTP_METHOD_REGEX.findall(attribute_args)
            if m.lower() in HTTP_METHODS
        ]
        if methods:
            binding["methods"] = methods
    elif family == "serviceBus":
        if len(positional) >= 2:
            binding["topicName"] = positional[0]
            binding["subscriptionName"] = positional[1]
        elif positional:
            binding["queueName"] = positional[0]
    else:
        for param_name, value in zip(POSITIONAL_PARAMS.get(family, []), positional):
            binding[param_name] = value

    for key, value in named.items():
        if key in KNOWN_NAMED_PARAMS and key not in binding:
            binding[key] = value


def try_extract_bindings(func_code: str | None) -> list[Binding]:
    """Extract bindings from attributes/annotations found in a function's code.

    Args:
        func_code: Source of the function (declaration and, optionally, body)

    Returns:
        List of bindings in order of appearance; empty if none were recognized
    """
    result: list[Binding] = []
    if not func_code:
        return result

    for match in BINDING_ATTRIBUTE_REGEX.finditer(func_code):
        is_return = bool(match.group(3))
        resolved = resolve_binding_attribute(match.group(4))
        if resolved is None:
            continue
        binding_type, direction = resolved

        # Attribute arguments, if the attribute has any
        args_start = match.end()
        while args_start < len(func_code) and func_code[args_start] in " \t":
            args_start += 1
        attribute_args = ""
        attribute_end = match.end()
        if func_code.startswith("(", args_start):
            block = extract_bracketed_block(func_code, args_start, "(", ")")
            if block is not None:
                attribute_args = block.body[1:-1]
                attribute_end = args_start + len(block.code)

        if direction is None:
            is_out = IS_OUT_REGEX.match(func_code, attribute_end) is not None
            direction = "out" if is_return or is_out else "in"
        elif is_return:
            direction = "out"

        binding: Binding = {"type": binding_type, "direction": direction}
        _extract_params(binding, attribute_args)
        result.append(binding)
        logger.debug(f"Extracted binding {binding}")

        if binding_type == "httpTrigger":
            result.append({"type": "http", "direction": "out"})

    return result
