"""Tests for WorkflowBuilder and the graphs it finalizes."""

from __future__ import annotations

import pytest

from ddbflow.builder import StepHandle, WorkflowBuilder
from ddbflow.core.exceptions import (
    CycleDetectedError,
    DisconnectedStepError,
    DuplicateIdError,
    DuplicateLinkError,
    InvalidPathError,
    NoEntryStepError,
    StepNotFoundError,
    WorkflowFrozenError,
)
from ddbflow.models.attributes import AttributeValue
from ddbflow.models.graph import WorkflowGraph
from ddbflow.models.paths import ref
from ddbflow.models.steps import PassStep, PutItemStep


def _pass(step_id: str) -> PassStep:
    return PassStep(step_id=step_id)


class TestAddStep:
    @pytest.mark.parametrize("n", [1, 2, 5, 12])
    def test_linear_traversal_matches_insertion_order(self, n):
        builder = WorkflowBuilder()
        ids = [f"s{i}" for i in range(n)]
        handle = builder.add_step(_pass(ids[0]))
        for step_id in ids[1:]:
            handle = handle.next(_pass(step_id))

        graph = builder.finalize()
        assert graph.step_ids == ids
        assert [s.step_id for s in graph.traverse()] == ids
        assert graph.start_at == "s0"
        assert graph.next_of(ids[-1]) is None

    def test_duplicate_id_raises(self):
        builder = WorkflowBuilder()
        builder.add_step(_pass("a"))
        builder.add_step(_pass("b"), predecessor="a")
        with pytest.raises(DuplicateIdError) as info:
            builder.add_step(_pass("a"), predecessor="b")
        assert info.value.step_id == "a"

    def test_duplicate_id_detected_regardless_of_order(self):
        builder = WorkflowBuilder()
        builder.add_step(_pass("x"))
        builder.add_step(_pass("y"))
        with pytest.raises(DuplicateIdError):
            builder.add_step(_pass("y"))
        with pytest.raises(DuplicateIdError):
            builder.add_step(_pass("x"))

    def test_failed_add_leaves_builder_unchanged(self):
        builder = WorkflowBuilder()
        a = builder.add_step(_pass("a"))
        a.next(_pass("b"))
        with pytest.raises(DuplicateLinkError):
            builder.add_step(_pass("c"), predecessor="a")
        assert len(builder) == 2
        assert builder.finalize().step_ids == ["a", "b"]

    def test_unknown_predecessor(self):
        builder = WorkflowBuilder()
        with pytest.raises(StepNotFoundError):
            builder.add_step(_pass("b"), predecessor="a")

    def test_handle_exposes_step(self):
        builder = WorkflowBuilder()
        handle = builder.add_step(_pass("a"))
        assert isinstance(handle, StepHandle)
        assert handle.step == _pass("a")


class TestLink:
    def test_successor_with_two_predecessors(self):
        builder = WorkflowBuilder()
        builder.add_step(_pass("a"))
        builder.add_step(_pass("b"), predecessor="a")
        builder.add_step(_pass("c"))
        with pytest.raises(DuplicateLinkError) as info:
            builder.link("c", "b")
        assert info.value.step_id == "b"

    def test_cycle_detected_on_finalize(self):
        builder = WorkflowBuilder()
        a = builder.add_step(_pass("a"))
        c = a.next(_pass("b")).next(_pass("c"))
        c.next(a)
        with pytest.raises(CycleDetectedError) as info:
            builder.finalize()
        assert info.value.step_id == "a"

    def test_self_loop(self):
        builder = WorkflowBuilder()
        a = builder.add_step(_pass("a"))
        builder.link(a, a)
        with pytest.raises(CycleDetectedError):
            builder.finalize()

    def test_disconnected_step(self):
        builder = WorkflowBuilder()
        builder.add_step(_pass("a"))
        builder.add_step(_pass("b"))
        with pytest.raises(DisconnectedStepError) as info:
            builder.finalize()
        assert info.value.step_id == "b"

    def test_link_joins_separate_steps(self):
        builder = WorkflowBuilder()
        builder.add_step(_pass("a"))
        builder.add_step(_pass("b"))
        builder.link("a", "b")
        assert builder.finalize().step_ids == ["a", "b"]


class TestChain:
    def test_chain_appends_to_tail(self):
        builder = WorkflowBuilder()
        builder.chain(_pass("a"), _pass("b"))
        last = builder.chain(_pass("c"))
        assert last.step_id == "c"
        assert builder.finalize().step_ids == ["a", "b", "c"]

    def test_chain_needs_steps(self):
        with pytest.raises(ValueError):
            WorkflowBuilder().chain()


class TestBindReference:
    def _builder(self, messages_table):
        builder = WorkflowBuilder()
        builder.add_step(PutItemStep(
            step_id="PutItem",
            table=messages_table,
            item={"MessageId": AttributeValue.string("1"), "Text": AttributeValue.string("")},
        ))
        return builder

    def test_binds_without_resolving(self, messages_table):
        builder = self._builder(messages_table)
        builder.bind_reference("PutItem", "item.Text", "$.not.yet.there")
        assert builder.get_step("PutItem").item["Text"].value == ref("$.not.yet.there")

    @pytest.mark.parametrize("path", ["bar", "$bar", "Item.TotalCount.N", "$"])
    def test_invalid_path(self, messages_table, path):
        builder = self._builder(messages_table)
        with pytest.raises(InvalidPathError) as info:
            builder.bind_reference("PutItem", "item.Text", path)
        assert info.value.step_id == "PutItem"

    def test_unknown_step(self, messages_table):
        with pytest.raises(StepNotFoundError):
            self._builder(messages_table).bind_reference("Nope", "item.Text", "$.bar")

    def test_handle_bind_chains(self, messages_table):
        builder = WorkflowBuilder()
        handle = builder.add_step(PutItemStep(
            step_id="PutItem",
            table=messages_table,
            item={"MessageId": AttributeValue.string("1"), "Text": AttributeValue.string("")},
        )).bind("item.Text", "$.bar")
        assert handle.step.item["Text"].is_reference


class TestFinalize:
    def test_empty_builder(self):
        with pytest.raises(NoEntryStepError):
            WorkflowBuilder().finalize()

    def test_empty_builder_stays_open(self):
        builder = WorkflowBuilder()
        with pytest.raises(NoEntryStepError):
            builder.finalize()
        builder.add_step(_pass("a"))
        assert len(builder.finalize()) == 1

    def test_idempotent(self):
        builder = WorkflowBuilder(comment="twice")
        builder.chain(_pass("a"), _pass("b"), _pass("c"))
        first = builder.finalize()
        second = builder.finalize()
        assert first == second
        assert first.model_dump() == second.model_dump()

    def test_frozen_after_finalize(self, messages_table):
        builder = WorkflowBuilder()
        builder.add_step(_pass("a"))
        builder.finalize()
        assert builder.frozen
        with pytest.raises(WorkflowFrozenError):
            builder.add_step(_pass("b"), predecessor="a")
        with pytest.raises(WorkflowFrozenError):
            builder.link("a", "a")

    def test_graph_is_serializable(self):
        builder = WorkflowBuilder()
        builder.chain(PassStep(step_id="Start", payload={"bar": "SomeValue"}), _pass("End"))
        graph = builder.finalize()
        restored = type(graph).model_validate_json(graph.model_dump_json())
        assert restored == graph

    def test_graph_lookup(self):
        builder = WorkflowBuilder()
        builder.chain(_pass("a"), _pass("b"))
        graph = builder.finalize()
        assert graph.get("b").step_id == "b"
        assert graph.next_of("a") == "b"
        with pytest.raises(StepNotFoundError):
            graph.get("zzz")

    def test_payload_is_copied_from_caller(self):
        payload = {"bar": "SomeValue"}
        builder = WorkflowBuilder()
        builder.add_step(PassStep(step_id="Start", payload=payload))
        graph = builder.finalize()
        payload["bar"] = "Mutated"
        assert graph.get("Start").payload == {"bar": "SomeValue"}
        assert builder.finalize().get("Start").payload == {"bar": "SomeValue"}

    def test_returned_graph_does_not_share_cached_state(self):
        builder = WorkflowBuilder()
        builder.chain(PassStep(step_id="a", payload={"n": 1}), _pass("b"))
        first = builder.finalize()
        first.get("a").payload["n"] = 2
        assert builder.finalize().get("a").payload == {"n": 1}

    def test_transitions_cannot_be_relinked(self):
        builder = WorkflowBuilder()
        builder.chain(_pass("a"), _pass("b"))
        graph = builder.finalize()
        with pytest.raises(TypeError):
            graph.transitions["b"] = "a"
        assert builder.finalize().next_of("b") is None
        assert [s.step_id for s in graph.traverse()] == ["a", "b"]

    def test_hand_built_cycle_stops_traversal(self):
        graph = WorkflowGraph(
            start_at="a",
            steps=(_pass("a"), _pass("b")),
            transitions=(("a", "b"), ("b", "a")),
        )
        with pytest.raises(CycleDetectedError):
            list(graph.traverse())
