"""Supplement descriptor-declared bindings with bindings found in .NET source code."""

import logging

from functions_graph.binding_parser import try_extract_bindings
from functions_graph.models import Binding

logger = logging.getLogger(__name__)


def merge_bindings(existing: list[Binding], from_code: list[Binding]) -> list[Binding]:
    """Merge bindings extracted from code into a function's binding list, in place.

    A binding from code is appended only if no binding of its type is present
    yet. A binding lacking a direction takes it from code only when exactly one
    binding of its type was extracted; otherwise the direction stays unset.

    Args:
        existing: Bindings from the descriptor (modified in place)
        from_code: Bindings extracted from source code

    Returns:
        The same list as existing
    """
    existing_types = {b.get("type") for b in existing}
    for binding in from_code:
        if binding["type"] not in existing_types:
            existing.append(dict(binding))
            existing_types.add(binding["type"])

    for binding in existing:
        if binding.get("direction"):
            continue
        candidates = [b for b in from_code if b["type"] == binding.get("type")]
        if len(candidates) == 1 and candidates[0].get("direction"):
            binding["direction"] = candidates[0]["direction"]

    return existing


def enrich_bindings(existing: list[Binding], func_code: str | None) -> list[Binding]:
    """Extract bindings from a function's code and merge them into existing."""
    from_code = try_extract_bindings(func_code)
    if from_code:
        logger.debug(f"Extracted {len(from_code)} bindings from code")
    return merge_bindings(existing, from_code)
