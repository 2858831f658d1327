"""Tests for host.json Durable Task settings."""

from pathlib import Path

import pytest

from functions_graph.host_settings import (
    parse_host_settings,
    read_host_settings,
    task_hub_names_from_table_names,
)
from functions_graph.models import HostSettings


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures"


class TestReadHostSettings:
    def when_read(self, folder):
        self.settings = read_host_settings(str(folder))

    def test_reads_hub_name(self, fixtures_path):
        """hubName is read from extensions.durableTask."""
        self.when_read(fixtures_path / "script_project")
        assert self.settings == HostSettings(hub_name="ScriptHub")

    def test_reads_capitalized_hub_name(self, fixtures_path):
        """The HubName spelling is accepted too."""
        self.when_read(fixtures_path / "java_project")
        assert self.settings.hub_name == "CitiesHub"

    def test_reads_mssql_storage_provider(self, fixtures_path):
        """MSSQL storage providers carry their connection string name."""
        self.when_read(fixtures_path / "isolated_project")
        assert self.settings == HostSettings(
            hub_name="",
            storage_provider_type="mssql",
            connection_string_name="SQLDB_Connection",
        )

    def test_defaults_without_durable_task_section(self, fixtures_path):
        """host.json without Durable Task settings gives defaults."""
        self.when_read(fixtures_path / "inprocess_project")
        assert self.settings == HostSettings()

    def test_defaults_for_malformed_host_json(self, tmp_path):
        """A malformed host.json gives defaults."""
        (tmp_path / "host.json").write_text("{ not json")
        self.when_read(tmp_path)
        assert self.settings == HostSettings()

    def test_defaults_for_missing_host_json(self, tmp_path):
        """A folder without host.json gives defaults."""
        self.when_read(tmp_path)
        assert self.settings == HostSettings()


class TestParseHostSettings:
    def test_ignores_other_storage_providers(self):
        """Only mssql changes the storage provider type."""
        settings = parse_host_settings(
            {"extensions": {"durableTask": {"storageProvider": {"type": "netherite"}}}}
        )
        assert settings.storage_provider_type == "default"


class TestTaskHubNamesFromTableNames:
    def test_hub_needs_instances_and_history_tables(self):
        """A hub is inferred only when both of its tables exist."""
        names = task_hub_names_from_table_names(
            [
                "MyHubInstances",
                "MyHubHistory",
                "OtherHubInstances",
                "AzureWebJobsHostLogs",
                "TestHubNameHistory",
                "TestHubNameInstances",
            ]
        )
        assert names == ["MyHub", "TestHubName"]
