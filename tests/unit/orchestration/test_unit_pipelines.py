# tests/unit/orchestration/test_unit_pipelines.py — v1
"""Tests for orchestration/pipeline.py and orchestration/dynamic_pipeline.py."""

from __future__ import annotations

import pytest

from stratagent.core.errors import ExecutionFailure
from stratagent.execution.engine import ExecutionEngine
from stratagent.execution.lifecycle import AgentLifecycle
from stratagent.execution.result import ExecutionResult
from stratagent.orchestration.dynamic_pipeline import DynamicPipeline
from stratagent.orchestration.pipeline import Pipeline, pipe


class CountingLifecycle(AgentLifecycle):
    def __init__(self):
        self.seen: list[str] = []

    async def before_execute(self, agent, input, context):
        self.seen.append(agent.name)


class TestStaticPipeline:
    @pytest.mark.asyncio
    async def test_chains_values(self, make_agent, context):
        pipeline = (
            Pipeline.of(make_agent("strip", fn=str.strip))
            .then(make_agent("upper", fn=str.upper))
            .then(make_agent("length", fn=len))
        )
        result = await pipeline.execute("  abc ", context)
        assert result.is_success()
        assert result.value == 3
        assert result.metadata.stage == "pipeline"

    @pytest.mark.asyncio
    async def test_failure_annotated_and_stops(self, make_agent, context):
        a = make_agent("alpha")
        b = make_agent("beta", fail=True)
        c = make_agent("gamma")
        result = await Pipeline.of(a, b, c).execute("x", context)

        assert result.is_failure()
        assert "2/3" in result.error_message
        assert "beta" in result.error_message
        assert "beta failed" in result.error_message
        assert isinstance(result.error, ExecutionFailure)
        assert isinstance(result.error.cause, RuntimeError)
        assert c.call_count == 0

    @pytest.mark.asyncio
    async def test_then_does_not_mutate_prefix(self, make_agent, context):
        prefix = Pipeline.of(make_agent("a"))
        longer = prefix.then(make_agent("b"))
        assert len(prefix) == 1
        assert len(longer) == 2

    @pytest.mark.asyncio
    async def test_with_lifecycle(self, make_agent, context):
        lifecycle = CountingLifecycle()
        builder = Pipeline.with_lifecycle(lifecycle).pipe(make_agent("a")).then(make_agent("b"))
        await builder.execute("x", context)
        assert lifecycle.seen == ["a", "b"]

    @pytest.mark.asyncio
    async def test_with_engine(self, make_agent, context):
        engine = ExecutionEngine()
        builder = Pipeline.with_engine(engine).pipe(make_agent("a", fn=str.upper))
        assert (await builder.execute("x", context)).value == "X"

    @pytest.mark.asyncio
    async def test_one_shot_pipe(self, make_agent, context):
        result = await pipe(
            make_agent("inc", fn=lambda x: x + 1),
            make_agent("double", fn=lambda x: x * 2),
            input=1, context=context,
        )
        assert result.value == 4


class TestDynamicPipeline:
    @pytest.mark.asyncio
    async def test_empty_returns_input_with_one_warning(self, context):
        result = await DynamicPipeline().execute("x", context)
        assert result.is_success()
        assert result.value == "x"
        assert len(result.warnings) == 1
        assert "empty" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_warnings_accumulate(self, make_agent, context):
        first = make_agent("first", fn=lambda x: ExecutionResult.success(x, warnings=["w1"]))
        second = make_agent("second", fn=lambda x: ExecutionResult.success(x, warnings=["w2"]))
        result = await DynamicPipeline([first, second]).execute("x", context)
        assert result.warnings == ("w1", "w2")

    @pytest.mark.asyncio
    async def test_stage_failure(self, make_agent, context):
        c = make_agent("c")
        pipeline = DynamicPipeline().add(make_agent("a")).add(make_agent("b", fail=True)).add(c)
        result = await pipeline.execute("x", context)
        assert "Pipeline failed at stage 2/3 (b)" in result.error_message
        assert c.call_count == 0

    def test_mutation(self, make_agent):
        a, b, c = make_agent("a"), make_agent("b"), make_agent("c")
        pipeline = DynamicPipeline().add_all([a, c])
        pipeline.insert_at(1, b)
        assert [x.name for x in pipeline.agents] == ["a", "b", "c"]
        assert pipeline.remove_at(0) is a
        assert len(pipeline) == 2
        pipeline.clear()
        assert pipeline.is_empty()

    @pytest.mark.parametrize("index", [-1, 3])
    def test_insert_out_of_bounds(self, make_agent, index):
        pipeline = DynamicPipeline([make_agent("a"), make_agent("b")])
        with pytest.raises(IndexError, match="out of bounds"):
            pipeline.insert_at(index, make_agent("x"))

    @pytest.mark.parametrize("index", [-1, 2])
    def test_remove_out_of_bounds(self, make_agent, index):
        pipeline = DynamicPipeline([make_agent("a"), make_agent("b")])
        with pytest.raises(IndexError):
            pipeline.remove_at(index)

    def test_clone_and_concat_share_agents(self, make_agent):
        a, b = make_agent("a"), make_agent("b")
        original = DynamicPipeline([a])
        clone = original.clone()
        clone.add(b)
        assert len(original) == 1
        assert clone.agents[0] is a
        joined = original.concat(DynamicPipeline([b]))
        assert joined.agents == (a, b)

    @pytest.mark.asyncio
    async def test_execute_and_transform_sync(self, make_agent, context):
        pipeline = DynamicPipeline([make_agent("upper", fn=str.upper)])
        result = await pipeline.execute_and_transform("ab", context, len)
        assert result.value == 2

    @pytest.mark.asyncio
    async def test_execute_and_transform_async(self, make_agent, context):
        async def wrap(value):
            return [value]

        result = await DynamicPipeline([make_agent("a")]).execute_and_transform("x", context, wrap)
        assert result.value == ["x"]

    @pytest.mark.asyncio
    async def test_transform_fault_does_not_rerun(self, make_agent, context):
        agent = make_agent("a")

        def boom(_):
            raise ValueError("bad transform")

        result = await DynamicPipeline([agent]).execute_and_transform("x", context, boom)
        assert result.is_failure()
        assert isinstance(result.error, ValueError)
        assert agent.call_count == 1
