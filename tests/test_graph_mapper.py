"""Tests for classification and call graph mapping."""

from pathlib import Path

import pytest

from functions_graph.descriptor_reader import read_function_jsons
from functions_graph.graph_mapper import (
    ACTIVITY,
    ENTITY,
    ORCHESTRATOR,
    OTHER,
    FunctionCode,
    classify_function,
    locate_function_code,
    map_orchestrator,
    map_orchestrators_and_activities,
)
from functions_graph.models import FunctionInfo, ProjectKind, SignalSource


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures"


def make_function(*binding_types):
    return FunctionInfo(bindings=[{"type": t, "direction": "in"} for t in binding_types])


def make_code(name, code):
    return FunctionCode(
        name=name, code=code, file_path=f"{name}.js", source_offset=0, line_number=1
    )


class TestClassifyFunction:
    @pytest.mark.parametrize(
        "binding_types,expected",
        [
            (["orchestrationTrigger"], ORCHESTRATOR),
            (["activityTrigger", "queue"], ACTIVITY),
            (["entityTrigger"], ENTITY),
            (["httpTrigger", "durableClient"], OTHER),
            ([], OTHER),
            (["activityTrigger", "orchestrationTrigger"], ORCHESTRATOR),
        ],
    )
    def test_buckets(self, binding_types, expected):
        """Each function lands in exactly one bucket, orchestrators first."""
        assert classify_function(make_function(*binding_types)) == expected


class TestMapOrchestrator:
    def given_functions(self):
        self.functions = {
            "Orch": make_function("orchestrationTrigger"),
            "Act": make_function("activityTrigger"),
            "Starter": make_function("httpTrigger"),
        }
        self.buckets = {
            ORCHESTRATOR: ["Orch"],
            ACTIVITY: ["Act"],
            ENTITY: [],
            OTHER: ["Starter"],
        }

    def given_codes(self, **codes):
        self.codes = {name: make_code(name, code) for name, code in codes.items()}

    def when_mapped(self):
        map_orchestrator(self.functions, "Orch", self.buckets, self.codes)

    def test_repeated_calls_give_one_edge(self):
        """An orchestrator calling the same activity twice is recorded once."""
        self.given_functions()
        self.given_codes(
            Orch='yield ctx.callActivity("Act"); yield ctx.callActivity("Act");'
        )
        self.when_mapped()
        assert self.functions["Act"].is_called_by == ["Orch"]

    def test_missing_orchestrator_code_gives_no_edges(self):
        """Without code, only starters found in other functions are recorded."""
        self.given_functions()
        self.given_codes(Starter='await client.startNew("Orch");')
        self.when_mapped()
        assert self.functions["Orch"].is_called_by == ["Starter"]
        assert self.functions["Act"].is_called_by == []
        assert self.functions["Orch"].is_called_by_itself is False

    def test_events_are_matched_to_raisers(self):
        """Functions raising an awaited event become signallers."""
        self.given_functions()
        self.given_codes(
            Orch='yield context.df.waitForExternalEvent("Go");',
            Starter='await client.raiseEvent(id, "Go", true);',
        )
        self.when_mapped()
        assert self.functions["Orch"].is_signalled_by == [
            SignalSource(name="Starter", signal_name="Go")
        ]

    def test_raisers_of_longer_event_names_are_not_signallers(self):
        """Raising "Go-Ahead" or passing Go as event data does not signal "Go"."""
        self.given_functions()
        self.given_codes(
            Orch='yield context.df.waitForExternalEvent("Go");',
            Starter='await client.raiseEvent(id, "Go-Ahead", true);',
            Act='await client.raiseEvent(id, "Other", Go);',
        )
        self.when_mapped()
        assert self.functions["Orch"].is_signalled_by == []


class TestLocateFunctionCode:
    def test_script_function_reads_entry_file(self, fixtures_path):
        """Script-based code is the whole entry point file."""
        project = str(fixtures_path / "script_project")
        found = locate_function_code("SubOrch", ProjectKind.SCRIPT_BASED, project, project)
        assert found.file_path.endswith("__init__.py")
        assert "call_activity" in found.code
        assert (found.source_offset, found.line_number) == (0, 1)

    def test_script_function_without_entry_file(self, fixtures_path):
        """Folders without an entry point file have no code."""
        project = str(fixtures_path / "script_project")
        assert (
            locate_function_code("NotAFunction", ProjectKind.SCRIPT_BASED, project, project)
            is None
        )

    def test_dotnet_function_code_spans_method_body(self, fixtures_path):
        """.NET code runs from the declaration to the end of the method body."""
        project = str(fixtures_path / "inprocess_project")
        found = locate_function_code(
            "SayHello", ProjectKind.DOTNET_IN_PROCESS, project, project
        )
        assert "[ActivityTrigger] string name" in found.code
        assert found.code.rstrip().endswith("return greeting;\n        }")
        assert "HttpStart" not in found.code
        assert found.line_number == 23

    def test_java_function_code(self, fixtures_path):
        """Java code is found by its @FunctionName annotation."""
        project = str(fixtures_path / "java_project")
        found = locate_function_code("Cities", ProjectKind.JAVA, project, project)
        assert found.code.count("callActivity") == 2
        assert "Capitalizing" not in found.code
        assert found.line_number == 21


class TestMapOrchestratorsAndActivities:
    async def given_script_project(self, fixtures_path):
        self.project = str(fixtures_path / "script_project")
        self.functions = await read_function_jsons(self.project)

    async def when_mapped(self):
        self.codes = await map_orchestrators_and_activities(
            self.functions, ProjectKind.SCRIPT_BASED, self.project, self.project
        )

    def then_called_by(self, name, expected):
        assert self.functions[name].is_called_by == expected

    @pytest.mark.asyncio
    async def test_maps_call_edges(self, fixtures_path):
        """Starters, suborchestrator calls and activity calls become edges."""
        await self.given_script_project(fixtures_path)
        await self.when_mapped()
        self.then_called_by("OrchA", ["HttpStart"])
        self.then_called_by("SubOrch", ["OrchA"])
        self.then_called_by("ActB", ["OrchA", "SubOrch"])
        self.then_called_by("Monitor", [])

    @pytest.mark.asyncio
    async def test_maps_entity_signallers(self, fixtures_path):
        """Functions building an entity's id call that entity."""
        await self.given_script_project(fixtures_path)
        await self.when_mapped()
        self.then_called_by("Counter", ["CounterSignaller"])

    @pytest.mark.asyncio
    async def test_maps_self_recursion(self, fixtures_path):
        """Only orchestrators calling continueAsNew call themselves."""
        await self.given_script_project(fixtures_path)
        await self.when_mapped()
        assert self.functions["Monitor"].is_called_by_itself is True
        assert self.functions["OrchA"].is_called_by_itself is False

    @pytest.mark.asyncio
    async def test_maps_event_signallers(self, fixtures_path):
        """Event raisers are recorded in order of the awaited events."""
        await self.given_script_project(fixtures_path)
        await self.when_mapped()
        assert self.functions["OrchA"].is_signalled_by == [
            SignalSource(name="Approver", signal_name="Approval"),
            SignalSource(name="Rejecter", signal_name="Rejection"),
        ]

    @pytest.mark.asyncio
    async def test_attaches_locations(self, fixtures_path):
        """Functions with code found get its location."""
        await self.given_script_project(fixtures_path)
        await self.when_mapped()
        monitor = self.functions["Monitor"]
        assert monitor.file_path.endswith("index.ts")
        assert (monitor.source_offset, monitor.line_number) == (0, 1)
        assert set(self.codes) == set(self.functions)
