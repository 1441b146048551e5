"""End-to-end tests for the research pipeline with fake providers."""

from __future__ import annotations

import asyncio

import pytest
from conftest import FakeGenerativeProvider, FakeSearchProvider, completion

from revintel.core.config import Credentials
from revintel.core.exceptions import ConfigurationError, ExternalServiceError, ParseFailure, StageFailure
from revintel.core.models import ResearchDepth, ResearchRequest
from revintel.intelligence.budget import CallBudgetTracker
from revintel.intelligence.pipeline import ResearchPipeline
from revintel.intelligence.research_models import PipelineState

EARNINGS_QUERY = '"Acme Foods" earnings revenue financial results growth'


def _pipeline(search=None, llm=None) -> ResearchPipeline:
    return ResearchPipeline(
        search_provider=search,
        generative_provider=llm,
        reference_year=2025,
        synthesis_backoff=(0, 0),
    )


def _stage_a(**kwargs):
    kwargs.setdefault("annotations", ["https://acmefoods.com/about"])
    return completion(
        "Acme Foods is a PE-backed snack maker.",
        model="gpt-4o-search-preview",
        input_tokens=1000,
        output_tokens=500,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_full_run_with_one_failed_query(acme_request, make_context, sample_report_json):
    """Eight planned queries, budget of eight, one provider error: report still produced."""
    search = FakeSearchProvider(
        failures={"earnings": ExternalServiceError("tavily", "upstream error", status_code=502)}
    )
    llm = FakeGenerativeProvider(
        [_stage_a(), completion(sample_report_json, input_tokens=2000, output_tokens=1000)]
    )
    progress = []

    result = await _pipeline(search, llm).run(
        acme_request, make_context(max_search_calls=8), on_progress=progress.append
    )

    assert result.ok
    assert result.state is PipelineState.DONE
    assert len(search.calls) == 8
    assert [b.success for b in result.batches].count(False) == 1

    metadata = result.report.metadata
    assert metadata.searches_performed == 8
    # One model citation plus seven unique search URLs.
    assert metadata.sources_cited == 8
    assert metadata.sources_cited == len(result.report.company_profile.citations)
    assert metadata.models_used.search == "gpt-4o-search-preview + fake-search"
    assert metadata.models_used.synthesis == "gpt-4o"
    assert metadata.estimated_cost == pytest.approx(0.0075 + 0.015 + 0.08)
    assert metadata.execution_time_ms >= 0

    # Stage B saw Stage A's text and only successful search evidence.
    synthesis_prompt = llm.calls[1]["messages"][0]["content"]
    assert "Acme Foods is a PE-backed snack maker." in synthesis_prompt
    assert EARNINGS_QUERY not in synthesis_prompt
    assert "sources from 7 searches" in synthesis_prompt

    assert progress[0] == "Starting research for Acme Foods..."
    assert progress[-1] == "Research complete!"
    assert any("Synthesizing with gpt-4o" in label for label in progress)


@pytest.mark.asyncio
async def test_budget_smaller_than_plan(acme_request, make_context, sample_report_json):
    search = FakeSearchProvider()
    llm = FakeGenerativeProvider([_stage_a(), completion(sample_report_json)])

    result = await _pipeline(search, llm).run(acme_request, make_context(max_search_calls=3))

    assert result.ok
    assert len(search.calls) == 3
    assert len(result.batches) == 8
    assert result.report.metadata.searches_performed == 3
    assert [b.error for b in result.batches[3:]] == ["Search call budget exceeded"] * 5


@pytest.mark.asyncio
async def test_search_disabled_uses_citation_estimate(acme_request, make_context, sample_report_json):
    llm = FakeGenerativeProvider(
        [
            _stage_a(annotations=[f"https://src{i}.com" for i in range(7)]),
            completion(sample_report_json),
        ]
    )

    result = await _pipeline(llm=llm).run(
        acme_request,
        make_context(search_enabled=False, credentials=Credentials(openai_api_key="sk-test")),
    )

    assert result.ok
    assert result.batches == []
    assert result.report.metadata.searches_performed == 3
    assert result.report.metadata.models_used.search == "gpt-4o-search-preview"


@pytest.mark.asyncio
async def test_deep_depth_uses_deep_model_and_pricing(make_context, sample_report_json):
    request = ResearchRequest(entity_name="Acme Foods", depth=ResearchDepth.DEEP)
    llm = FakeGenerativeProvider(
        [_stage_a(), completion(sample_report_json, model="o1", input_tokens=2000, output_tokens=1000)]
    )

    result = await _pipeline(FakeSearchProvider(), llm).run(request, make_context())

    assert llm.calls[1]["model"] == "o1"
    assert result.report.metadata.models_used.synthesis == "o1"
    # 3000 in, 1500 out at deep rates plus 8 searches.
    assert result.report.metadata.estimated_cost == pytest.approx(0.045 + 0.09 + 0.08)


@pytest.mark.asyncio
async def test_missing_openai_key_fails_before_any_call(acme_request, make_context):
    search = FakeSearchProvider()
    context = make_context(credentials=Credentials(tavily_api_key="tvly-test"))

    result = await ResearchPipeline(search_provider=search).run(acme_request, context)

    assert not result.ok
    assert isinstance(result.error, ConfigurationError)
    assert result.state is PipelineState.FAILED
    assert search.calls == []


@pytest.mark.asyncio
async def test_missing_tavily_key_with_search_enabled(acme_request, make_context):
    llm = FakeGenerativeProvider([])
    context = make_context(credentials=Credentials(openai_api_key="sk-test"))

    result = await ResearchPipeline(generative_provider=llm).run(acme_request, context)

    assert isinstance(result.error, ConfigurationError)
    assert "TAVILY_API_KEY" in result.error.message
    assert llm.calls == []


@pytest.mark.asyncio
async def test_stage_failure_is_reported(acme_request, make_context):
    llm = FakeGenerativeProvider([ExternalServiceError("openai", "invalid key", status_code=401)])

    result = await _pipeline(FakeSearchProvider(), llm).run(acme_request, make_context())

    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, StageFailure)
    assert result.report is None
    # Search evidence gathered before the failure is still inspectable.
    assert len(result.batches) == 8


@pytest.mark.asyncio
async def test_parse_failure_is_reported(acme_request, make_context):
    llm = FakeGenerativeProvider([_stage_a(), completion("Here is your report: none")])

    result = await _pipeline(FakeSearchProvider(), llm).run(acme_request, make_context())

    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, ParseFailure)


@pytest.mark.asyncio
async def test_empty_synthesis_object_still_yields_report(acme_request, make_context):
    llm = FakeGenerativeProvider([_stage_a(annotations=[]), completion("{}")])

    result = await _pipeline(FakeSearchProvider(), llm).run(acme_request, make_context())

    assert result.ok
    assert result.report.company_profile.confirmed_name == "Acme Foods"
    assert result.report.outreach_priority.recommended_personas == ["cfo_finance"]


@pytest.mark.asyncio
async def test_cancellation_keeps_consumed_budget(acme_request, make_context):
    """Cancelling mid-search aborts promptly; the spent call is not refunded."""
    search = FakeSearchProvider()
    search.gate = asyncio.Event()
    llm = FakeGenerativeProvider([])
    tracker = CallBudgetTracker(8)

    task = asyncio.create_task(
        _pipeline(search, llm).run(acme_request, make_context(), tracker=tracker)
    )
    await asyncio.wait_for(search.started.wait(), timeout=1)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert tracker.get_call_count() == 1
    assert len(search.calls) == 1
    assert llm.calls == []


@pytest.mark.asyncio
async def test_concurrent_requests_have_independent_budgets(make_context, sample_report_json):
    class RoutingProvider:
        """Answers by stage so interleaved requests get the right payload."""

        async def complete(self, *, model, messages, search_options=None, json_mode=False, timeout=None):
            if search_options is not None:
                return _stage_a()
            return completion(sample_report_json)

    pipeline = _pipeline(FakeSearchProvider(), RoutingProvider())
    first = ResearchRequest(entity_name="Acme Foods")
    second = ResearchRequest(entity_name="Beta Snacks")

    results = await asyncio.gather(
        pipeline.run(first, make_context(max_search_calls=2)),
        pipeline.run(second, make_context(max_search_calls=5)),
    )

    assert [r.report.metadata.searches_performed for r in results] == [2, 5]
