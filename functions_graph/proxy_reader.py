"""Read proxies.json and annotate each proxy with its location."""

import asyncio
import json
import logging
import os
import re

from functions_graph.code_locator import offset_to_line_number, read_text_file
from functions_graph.models import ProjectKind, ProxiesMap, ProxyInfo
from functions_graph.project_locator import read_project_file

logger = logging.getLogger(__name__)

PROXIES_JSON = "proxies.json"

# <None Update="proxies.json">, <Content Include="proxies.json">
PROXIES_JSON_ENTRY_REGEX = re.compile(r'\s*=\s*"proxies\.json"\s*>', re.IGNORECASE)


def find_proxies_json(*folders: str) -> str | None:
    """Return the first existing proxies.json among folders."""
    for folder in folders:
        path = os.path.join(folder, PROXIES_JSON)
        if os.path.isfile(path):
            return path
    return None


def is_registered_in_project_file(project_file_code: str | None) -> bool:
    """Check whether a .csproj/.fsproj mentions proxies.json as an included file.

    A project without a project file has nothing to register it in.
    """
    if project_file_code is None:
        return True
    return PROXIES_JSON_ENTRY_REGEX.search(project_file_code) is not None


def parse_proxies(
    proxies_json_path: str, proxies_json_string: str, not_registered: bool
) -> ProxiesMap:
    """Parse proxies.json text into a proxies map.

    Raises:
        json.JSONDecodeError: If the text is not valid JSON
    """
    proxies_json = json.loads(proxies_json_string)
    raw_proxies = proxies_json.get("proxies") if isinstance(proxies_json, dict) else None
    if not isinstance(raw_proxies, dict):
        return {}

    proxies: ProxiesMap = {}
    for proxy_name, fields in raw_proxies.items():
        proxy = ProxyInfo(
            fields=fields if isinstance(fields, dict) else {},
            file_path=proxies_json_path,
            warning_not_registered_in_project_file=not_registered,
        )

        match = re.search(rf'"{re.escape(proxy_name)}"\s*:', proxies_json_string)
        if match:
            proxy.source_offset = match.start()
            proxy.line_number = offset_to_line_number(
                proxies_json_string, proxy.source_offset
            )

        proxies[proxy_name] = proxy

    return proxies


def _read_proxies(project_folder: str, kind: ProjectKind, *extra_folders: str) -> ProxiesMap:
    proxies_json_path = find_proxies_json(project_folder, *extra_folders)
    if proxies_json_path is None:
        return {}

    try:
        proxies_json_string = read_text_file(proxies_json_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read {proxies_json_path}: {e}")
        return {}

    not_registered = False
    if kind.is_dotnet:
        not_registered = not is_registered_in_project_file(
            read_project_file(project_folder)
        )
        if not_registered:
            logger.warning(f"{PROXIES_JSON} is not included in the project file")

    try:
        proxies = parse_proxies(proxies_json_path, proxies_json_string, not_registered)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse {proxies_json_path}: {e}")
        return {}

    logger.info(f"Read {len(proxies)} proxies from {proxies_json_path}")
    return proxies


async def read_proxies_json(
    project_folder: str, kind: ProjectKind, *extra_folders: str
) -> ProxiesMap:
    """Read proxies.json from project_folder (or the first of extra_folders having one).

    Never fails: a missing or malformed proxies.json gives an empty map.
    """
    return await asyncio.to_thread(_read_proxies, project_folder, kind, *extra_folders)
