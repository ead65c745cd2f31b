"""End-to-end tests for generation turns."""

import asyncio
import json

import httpx

from flameview.errors import CollaboratorError
from flameview.host import RenderHost, RenderStatus
from flameview.persistence import DashboardStore, InMemoryDocumentStore
from flameview.pipeline import GenerationPipeline, HttpDataFetchClient, InMemoryDataSource
from flameview.pipeline.extraction import NO_CODE_MESSAGE

from fv_fakes import BAR_CHART_SOURCE, FakeGenerator, fenced

SIGNUPS = {"signups": [{"day": "Mon", "count": 3}]}


class StatusRecorder(FakeGenerator):
    """Records the host status at the moment generation is requested."""

    def __init__(self, host, responses):
        super().__init__(responses)
        self.host = host
        self.statuses = []

    async def generate(self, prompt, *, sampling=None):
        self.statuses.append(self.host.status)
        return await super().generate(prompt, sampling=sampling)


class BlockingGenerator(FakeGenerator):
    """Holds every call until ``release`` is set."""

    def __init__(self, responses):
        super().__init__(responses)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, prompt, *, sampling=None):
        self.started.set()
        await self.release.wait()
        return await super().generate(prompt, sampling=sampling)


class BrokenDataSource(InMemoryDataSource):
    async def fetch(self, requirements):
        raise CollaboratorError("Data API error (status 500)", collaborator="data-fetch", status_code=500)


class ExplodingDataSource(InMemoryDataSource):
    async def fetch(self, requirements):
        raise RuntimeError("socket closed")


class FailingDocuments(InMemoryDocumentStore):
    def put(self, collection, key, document):
        raise OSError("disk full")


async def test_bar_chart_turn_goes_from_loading_to_ready(settings):
    host = RenderHost()
    generator = StatusRecorder(host, [fenced(BAR_CHART_SOURCE)])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), host=host, settings=settings)
    assert pipeline.state.status is RenderStatus.EMPTY

    result = await pipeline.submit("Show sign-ups per day as a bar chart")

    assert generator.statuses == [RenderStatus.LOADING]
    assert result.ok
    assert result.status == "ready"
    assert result.summary == "- Shows sign-ups per day"
    assert result.source.text == BAR_CHART_SOURCE.rstrip()
    assert result.data == SIGNUPS
    assert not pipeline.busy

    view = pipeline.view()
    assert view.find("series").props["points"] == [{"x": "Mon", "y": 3}]
    assert pipeline.history[-1].success


async def test_generation_uses_generation_sampling(settings):
    generator = FakeGenerator([fenced(BAR_CHART_SOURCE)])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), settings=settings)
    await pipeline.submit("Sign-ups")
    assert len(generator.prompts) == 1
    assert generator.samplings[0].temperature == settings.generation_temperature
    assert "User request: Sign-ups" in generator.prompts[0]
    assert '"signups"' in generator.prompts[0]


async def test_prose_only_response_is_a_code_error(settings):
    pipeline = GenerationPipeline(
        FakeGenerator(["Sorry, I can only describe dashboards in words."]),
        InMemoryDataSource(SIGNUPS),
        settings=settings,
    )
    result = await pipeline.submit("Show sign-ups")
    assert result.status == "code_error"
    assert result.category == "extraction"
    assert result.message == NO_CODE_MESSAGE
    assert pipeline.state.status is RenderStatus.CODE_ERROR
    assert pipeline.history[-1].success is False
    assert pipeline.view().find("p").text_content() == NO_CODE_MESSAGE


async def test_rejected_code_is_a_code_error(settings):
    pipeline = GenerationPipeline(
        FakeGenerator([fenced("def Dashboard(data):\n    return eval('1')")]),
        InMemoryDataSource(SIGNUPS),
        settings=settings,
    )
    result = await pipeline.submit("Show sign-ups")
    assert result.status == "code_error"
    assert result.category == "sanitization"
    assert pipeline.history[-1].success is False


async def test_generation_failure_is_reported(settings):
    pipeline = GenerationPipeline(
        FakeGenerator([CollaboratorError("Gemini API error (status 503)", collaborator="gemini")]),
        InMemoryDataSource(SIGNUPS),
        settings=settings,
    )
    result = await pipeline.submit("Show sign-ups")
    assert result.status == "code_error"
    assert result.category == "collaborator"
    assert pipeline.history[-1].ai_response == "Gemini API error (status 503)"
    assert not pipeline.busy


async def test_malformed_schema_response_is_a_code_error(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "data": {"schema": ["signups"]}})

    host = RenderHost()
    generator = FakeGenerator([fenced(BAR_CHART_SOURCE)])
    source = HttpDataFetchClient("http://data.test", transport=httpx.MockTransport(handler))
    pipeline = GenerationPipeline(generator, source, host=host, settings=settings)
    try:
        result = await pipeline.submit("Show sign-ups")
    finally:
        await source.aclose()

    assert result.status == "code_error"
    assert result.category == "collaborator"
    assert host.status is RenderStatus.CODE_ERROR
    assert generator.prompts == []
    assert not pipeline.busy


async def test_unexpected_collaborator_exception_becomes_a_code_error(settings):
    host = RenderHost()
    pipeline = GenerationPipeline(FakeGenerator([]), ExplodingDataSource(SIGNUPS), host=host, settings=settings)
    result = await pipeline.submit("Show sign-ups")

    assert result.status == "code_error"
    assert result.category == "collaborator"
    assert result.message == "Dashboard generation failed: RuntimeError: socket closed"
    assert host.status is RenderStatus.CODE_ERROR
    assert pipeline.history[-1].success is False
    assert not pipeline.busy


async def test_data_fetch_failure_stops_the_turn(settings):
    generator = FakeGenerator([fenced(BAR_CHART_SOURCE)])
    pipeline = GenerationPipeline(generator, BrokenDataSource(SIGNUPS), settings=settings)
    result = await pipeline.submit("Show sign-ups")
    assert result.category == "collaborator"
    assert generator.prompts == []


async def test_requirements_analysis_selects_and_filters(settings):
    settings = settings.model_copy(update={"analyze_requirements": True})
    source = InMemoryDataSource(
        {
            "orders": [{"status": "paid", "total": 5}, {"status": "open", "total": 7}],
            "users": [{"name": "ada"}],
        }
    )
    analysis = json.dumps({"collections": ["orders"], "filters": {"orders": {"status": "paid"}}, "limit": 10})
    code = "def Dashboard(data):\n    return <p>{len(data['orders'])} paid</p>"
    generator = FakeGenerator([analysis, fenced(code)])
    pipeline = GenerationPipeline(generator, source, settings=settings)

    result = await pipeline.submit("How many paid orders?")

    assert result.ok
    assert pipeline.requirements.collections == ["orders"]
    assert result.data == {"orders": [{"status": "paid", "total": 5}]}
    assert generator.samplings[0].temperature == settings.requirements_temperature
    assert "Supported filter operators" in generator.prompts[0]
    assert pipeline.view().text_content() == "1 paid"


async def test_unusable_analysis_falls_back_to_all_collections(settings):
    settings = settings.model_copy(update={"analyze_requirements": True})
    source = InMemoryDataSource({"orders": [{"total": 5}], "users": [{"name": "ada"}]})

    for analysis in ["I think you need orders.", json.dumps({"collections": ["ghosts"]})]:
        generator = FakeGenerator([analysis, fenced(BAR_CHART_SOURCE)])
        pipeline = GenerationPipeline(generator, source, settings=settings)
        await pipeline.submit("Everything")
        assert pipeline.requirements.collections == ["orders", "users"]
        assert pipeline.requirements.limit == settings.default_fetch_limit


async def test_follow_up_prompt_carries_previous_code_and_history(settings):
    updated = BAR_CHART_SOURCE.replace("#8884d8", "#0000ff")
    generator = FakeGenerator([fenced(BAR_CHART_SOURCE), fenced(updated, "- Bars are blue now")])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), settings=settings)

    await pipeline.submit("Show sign-ups")
    result = await pipeline.submit("Make the bars blue")

    second_prompt = generator.prompts[1]
    assert "Previous dashboard code:\n```pyx\n" + BAR_CHART_SOURCE.rstrip() in second_prompt
    assert "User: Show sign-ups" in second_prompt
    assert "AI: - Shows sign-ups per day" in second_prompt
    assert result.ok
    assert pipeline.view().find("series").props["fill"] == "#0000ff"
    assert len(pipeline.history) == 2


async def test_submission_while_busy_is_refused(settings):
    generator = BlockingGenerator([fenced(BAR_CHART_SOURCE)])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), settings=settings)

    first = asyncio.create_task(pipeline.submit("Show sign-ups"))
    await generator.started.wait()
    assert pipeline.busy

    second = await pipeline.submit("Something else")
    assert second.status == "busy"

    generator.release.set()
    assert (await first).ok
    assert not pipeline.busy
    assert len(generator.prompts) == 1


async def test_reset_discards_the_turn_in_flight(settings):
    generator = BlockingGenerator([fenced(BAR_CHART_SOURCE)])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), settings=settings)

    turn = asyncio.create_task(pipeline.submit("Show sign-ups"))
    await generator.started.wait()
    pipeline.reset()
    assert pipeline.state.status is RenderStatus.EMPTY
    assert not pipeline.busy

    generator.release.set()
    result = await turn

    assert result.status == "stale"
    assert pipeline.state.status is RenderStatus.EMPTY
    assert pipeline.history == []
    assert pipeline.host.source is None


async def test_stale_failure_does_not_touch_the_host(settings):
    generator = BlockingGenerator(["no code at all"])
    pipeline = GenerationPipeline(generator, InMemoryDataSource(SIGNUPS), settings=settings)

    turn = asyncio.create_task(pipeline.submit("Show sign-ups"))
    await generator.started.wait()
    pipeline.reset()
    generator.release.set()

    assert (await turn).status == "stale"
    assert pipeline.state.status is RenderStatus.EMPTY
    assert pipeline.history == []


async def test_refresh_data_reuses_the_component(settings):
    source = InMemoryDataSource(SIGNUPS)
    pipeline = GenerationPipeline(FakeGenerator([fenced(BAR_CHART_SOURCE)]), source, settings=settings)
    await pipeline.submit("Show sign-ups")
    compiled = pipeline.host.compile_count

    source.collections["signups"].append({"day": "Tue", "count": 8})
    data = await pipeline.refresh_data()

    assert data["signups"][-1] == {"day": "Tue", "count": 8}
    assert pipeline.view().find("series").props["points"][-1] == {"x": "Tue", "y": 8}
    assert pipeline.host.compile_count == compiled
    assert source.fetch_count == 2


async def test_schema_is_discovered_once(settings):
    calls = []

    class CountingSource(InMemoryDataSource):
        async def discover_schema(self):
            calls.append(1)
            return await super().discover_schema()

    pipeline = GenerationPipeline(
        FakeGenerator([fenced(BAR_CHART_SOURCE), fenced(BAR_CHART_SOURCE)]),
        CountingSource(SIGNUPS),
        settings=settings,
    )
    await pipeline.submit("one")
    await pipeline.submit("two")
    assert calls == [1]


async def test_successful_turns_are_saved(settings):
    store = DashboardStore(InMemoryDocumentStore())
    pipeline = GenerationPipeline(
        FakeGenerator([fenced(BAR_CHART_SOURCE), fenced(BAR_CHART_SOURCE, "- Same again")]),
        InMemoryDataSource(SIGNUPS),
        settings=settings,
        store=store,
        user_id="user-1",
    )
    await pipeline.submit("Show sign-ups")
    first_id = pipeline.record.id
    await pipeline.submit("Again")

    records = store.list_for_user("user-1")
    assert [record.id for record in records] == [first_id]
    record = records[0]
    assert record.title == "Show sign-ups"
    assert record.code == BAR_CHART_SOURCE.rstrip()
    assert record.description == "- Same again"
    assert [message.user_message for message in record.messages] == ["Show sign-ups", "Again"]
    assert record.data_requirements["collections"] == ["signups"]


async def test_storage_failure_does_not_fail_the_turn(settings):
    pipeline = GenerationPipeline(
        FakeGenerator([fenced(BAR_CHART_SOURCE)]),
        InMemoryDataSource(SIGNUPS),
        settings=settings,
        store=DashboardStore(FailingDocuments()),
    )
    result = await pipeline.submit("Show sign-ups")
    assert result.ok
    assert pipeline.state.status is RenderStatus.READY
