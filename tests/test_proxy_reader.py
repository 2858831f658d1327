"""Tests for proxies.json reading."""

import logging
from pathlib import Path

import pytest

from functions_graph.models import ProjectKind
from functions_graph.proxy_reader import is_registered_in_project_file, read_proxies_json


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures"


class TestReadProxiesJson:
    async def when_read(self, folder, kind, *extra_folders):
        self.proxies = await read_proxies_json(str(folder), kind, *extra_folders)

    @pytest.mark.asyncio
    async def test_reads_proxies_with_locations(self, fixtures_path):
        """Each proxy keeps its fields and gets the line it is declared at."""
        await self.when_read(fixtures_path / "script_project", ProjectKind.SCRIPT_BASED)
        assert list(self.proxies) == ["foo", "bar"]
        foo = self.proxies["foo"]
        assert foo.fields["backendUri"] == "https://localhost/api/HttpStart"
        assert foo.file_path.endswith("proxies.json")
        assert foo.line_number == 4
        assert self.proxies["bar"].line_number == 10
        assert foo.warning_not_registered_in_project_file is False

    @pytest.mark.asyncio
    async def test_flags_proxies_missing_from_project_file(self, fixtures_path):
        """.NET projects not copying proxies.json get a warning flag."""
        await self.when_read(fixtures_path / "inprocess_project", ProjectKind.DOTNET_IN_PROCESS)
        assert self.proxies["hello"].warning_not_registered_in_project_file is True

    @pytest.mark.asyncio
    async def test_falls_back_to_extra_folders(self, fixtures_path, tmp_path):
        """proxies.json is also looked for in the extra folders."""
        await self.when_read(
            tmp_path, ProjectKind.SCRIPT_BASED, str(fixtures_path / "script_project")
        )
        assert list(self.proxies) == ["foo", "bar"]

    @pytest.mark.asyncio
    async def test_missing_proxies_json(self, tmp_path):
        """No proxies.json means no proxies."""
        await self.when_read(tmp_path, ProjectKind.SCRIPT_BASED)
        assert self.proxies == {}

    @pytest.mark.asyncio
    async def test_malformed_proxies_json(self, tmp_path, caplog):
        """A malformed proxies.json is logged and gives no proxies."""
        (tmp_path / "proxies.json").write_text('{"proxies": {')
        with caplog.at_level(logging.WARNING):
            await self.when_read(tmp_path, ProjectKind.SCRIPT_BASED)
        assert self.proxies == {}
        assert "proxies.json" in caplog.text


class TestIsRegisteredInProjectFile:
    @pytest.mark.parametrize(
        "project_file,expected",
        [
            ('<None Update="proxies.json">', True),
            ('<Content Include = "proxies.json" >', True),
            ('<None Update="host.json">', False),
            (None, True),
        ],
    )
    def test_registration(self, project_file, expected):
        """proxies.json counts as registered when the project file includes it."""
        assert is_registered_in_project_file(project_file) is expected
