"""Read Durable Task settings from host.json."""

import json
import logging
import os

from functions_graph.code_locator import read_text_file
from functions_graph.models import HostSettings

logger = logging.getLogger(__name__)


def parse_host_settings(host_json: dict) -> HostSettings:
    """Pick hub name and storage provider out of parsed host.json contents."""
    result = HostSettings()

    extensions = host_json.get("extensions") if isinstance(host_json, dict) else None
    durable_task = extensions.get("durableTask") if isinstance(extensions, dict) else None
    if not isinstance(durable_task, dict):
        return result

    hub_name = durable_task.get("HubName") or durable_task.get("hubName")
    if hub_name:
        result.hub_name = hub_name

    storage_provider = durable_task.get("storageProvider")
    if isinstance(storage_provider, dict) and storage_provider.get("type") == "mssql":
        result.storage_provider_type = "mssql"
        result.connection_string_name = storage_provider.get("connectionStringName", "")

    return result


def read_host_settings(folder: str) -> HostSettings:
    """Read <folder>/host.json. A missing or malformed file gives default settings."""
    host_json_path = os.path.join(folder, "host.json")
    if not os.path.isfile(host_json_path):
        return HostSettings()

    try:
        host_json = json.loads(read_text_file(host_json_path))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to parse {host_json_path}: {e}")
        return HostSettings()

    return parse_host_settings(host_json)


def task_hub_names_from_table_names(table_names: list[str]) -> list[str]:
    """Infer task hub names from storage table names.

    A hub is assumed when both <hub>Instances and <hub>History tables exist.
    """
    instances = [
        name[: -len("Instances")] for name in table_names if name.endswith("Instances")
    ]
    histories = {name[: -len("History")] for name in table_names if name.endswith("History")}
    return [name for name in instances if name in histories]
