"""Per-turn orchestration: from a user instruction to a rendered component."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from flameview.config import Settings, get_settings
from flameview.errors import CollaboratorError, FlameViewError
from flameview.host import RenderHost, RenderState, RenderStatus
from flameview.observability import log_pipeline_event
from flameview.persistence import DashboardRecord, DashboardStore, MessageRecord
from flameview.sandbox import SAFE_BUILTINS
from flameview.source import GeneratedSource

from .data_fetch import FILTER_OPERATORS, DataBundle, DataFetchClient, DataRequirements, parse_requirements
from .extraction import extract_source
from .generation import GenerationClient, SamplingConfig
from .prompts import build_generation_prompt, build_requirements_prompt, parse_json_object
from .schema import CollectionSchema

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationTurn:
    user_message: str
    ai_response: str
    summary: Optional[str] = None
    success: bool = True
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class TurnResult:
    """Outcome of one :meth:`GenerationPipeline.submit` call.

    ``status`` is ``ready`` or ``code_error`` (the host's state after the
    turn), ``busy`` when a turn was already in flight, or ``stale`` when
    the pipeline was reset while this turn was waiting.
    """

    status: str
    request_id: Optional[str] = None
    summary: Optional[str] = None
    message: Optional[str] = None
    category: Optional[str] = None
    source: Optional[GeneratedSource] = None
    data: DataBundle = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == RenderStatus.READY.value


class GenerationPipeline:
    """Drives one conversation with the generation collaborator.

    At most one turn is in flight; a submission made meanwhile is refused
    with status ``busy``. Every turn takes a monotonically increasing token
    and its result is only applied if the token is still the latest one.
    """

    def __init__(
        self,
        generator: GenerationClient,
        data_source: DataFetchClient,
        *,
        host: Optional[RenderHost] = None,
        settings: Optional[Settings] = None,
        store: Optional[DashboardStore] = None,
        user_id: str = "local",
        schema: Optional[Dict[str, CollectionSchema]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.generator = generator
        self.data_source = data_source
        self.host = host or RenderHost(max_render_passes=self.settings.max_render_passes)
        self.store = store
        self.user_id = user_id
        self.schema = schema
        self.history: List[ConversationTurn] = []
        self.requirements: Optional[DataRequirements] = None
        self.data: DataBundle = {}
        self.record: Optional[DashboardRecord] = None
        self._token = 0
        self._in_flight = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def busy(self) -> bool:
        return self._in_flight

    @property
    def state(self) -> RenderState:
        return self.host.state

    def reset(self) -> None:
        """Start over: forget the conversation and ignore any turn in flight."""
        self._token += 1
        self._in_flight = False
        self.history = []
        self.requirements = None
        self.data = {}
        self.record = None
        self.host.set_source(None)

    async def submit(self, instruction: str) -> TurnResult:
        if self._in_flight:
            log_pipeline_event("turn_rejected_busy", level=logging.WARNING, logger=logger)
            return TurnResult(status="busy", message="A dashboard is already being generated.")

        self._token += 1
        token = self._token
        request_id = uuid.uuid4().hex
        self._in_flight = True
        self.host.set_loading()
        log_pipeline_event("turn_started", request_id=request_id, logger=logger, token=token)
        try:
            return await self._run_turn(instruction, token, request_id)
        finally:
            if token == self._token:
                self._in_flight = False

    async def refresh_data(self) -> DataBundle:
        """Re-fetch with the last requirements; the component is not rebuilt."""
        if self.requirements is None:
            return self.data
        self.data = await self.data_source.fetch(self.requirements)
        log_pipeline_event(
            "data_refreshed",
            logger=logger,
            collections=list(self.requirements.collections),
        )
        return self.data

    def view(self):
        return self.host.view(self.data)

    # ------------------------------------------------------------------
    # Turn steps
    # ------------------------------------------------------------------
    async def _run_turn(self, instruction: str, token: int, request_id: str) -> TurnResult:
        response: Optional[str] = None
        try:
            schema = await self._ensure_schema()
            requirements = await self._requirements_for(instruction, schema, request_id)
            data = await self.data_source.fetch(requirements)
            log_pipeline_event(
                "data_fetched",
                request_id=request_id,
                logger=logger,
                rows={name: len(rows) for name, rows in data.items()},
            )
            prompt = build_generation_prompt(
                instruction,
                capabilities=self.host.capabilities,
                schema=schema,
                data=data,
                previous_code=self.host.source.text if self.host.source else None,
                history=self.history,
                sample_size=self.settings.prompt_sample_rows,
                builtins=sorted(SAFE_BUILTINS),
            )
            response = await self.generator.generate(prompt, sampling=SamplingConfig.for_generation(self.settings))
            extracted = extract_source(response)
        except FlameViewError as exc:
            return self._fail(instruction, exc, token, request_id, response=response or exc.message)
        except Exception as exc:
            logger.exception("Unexpected failure in generation turn %s", request_id)
            error = CollaboratorError(f"Dashboard generation failed: {type(exc).__name__}: {exc}")
            return self._fail(instruction, error, token, request_id, response=response or error.message)

        if token != self._token:
            log_pipeline_event("turn_discarded_stale", request_id=request_id, logger=logger)
            return TurnResult(status="stale", request_id=request_id, summary=extracted.summary)

        source = GeneratedSource(text=extracted.code, request_id=request_id)
        self.requirements = requirements
        self.data = data
        state = self.host.set_source(source)
        success = state.status is RenderStatus.READY
        self.history.append(
            ConversationTurn(
                user_message=instruction,
                ai_response=response,
                summary=extracted.summary,
                success=success,
            )
        )
        log_pipeline_event(
            "turn_completed",
            request_id=request_id,
            logger=logger,
            status=state.status.value,
            extraction=extracted.method,
        )
        if success:
            self._save(instruction, source, extracted.summary)
        return TurnResult(
            status=state.status.value,
            request_id=request_id,
            summary=extracted.summary,
            message=state.message,
            category=state.category,
            source=source,
            data=data,
        )

    def _fail(
        self,
        instruction: str,
        error: FlameViewError,
        token: int,
        request_id: str,
        *,
        response: str,
    ) -> TurnResult:
        log_pipeline_event(
            "turn_failed",
            request_id=request_id,
            level=logging.WARNING,
            logger=logger,
            category=error.category,
            error=error.format(),
        )
        if token != self._token:
            return TurnResult(status="stale", request_id=request_id, message=error.message)
        self.history.append(ConversationTurn(user_message=instruction, ai_response=response, success=False))
        state = self.host.report_failure(error)
        return TurnResult(
            status=state.status.value,
            request_id=request_id,
            message=error.message,
            category=error.category,
        )

    async def _ensure_schema(self) -> Dict[str, CollectionSchema]:
        if self.schema is None:
            self.schema = await self.data_source.discover_schema()
        return self.schema

    async def _requirements_for(
        self,
        instruction: str,
        schema: Dict[str, CollectionSchema],
        request_id: str,
    ) -> DataRequirements:
        limit = self.settings.default_fetch_limit
        fallback = DataRequirements.all_collections(schema, limit=limit)
        if not self.settings.analyze_requirements or not schema:
            return fallback
        prompt = build_requirements_prompt(instruction, schema=schema, limit=limit, operators=FILTER_OPERATORS)
        try:
            response = await self.generator.generate(prompt, sampling=SamplingConfig.for_requirements(self.settings))
            requirements = parse_requirements(parse_json_object(response), default_limit=limit)
        except (CollaboratorError, ValueError) as exc:
            log_pipeline_event(
                "requirements_fallback",
                request_id=request_id,
                level=logging.WARNING,
                logger=logger,
                reason=str(exc),
            )
            return fallback
        known = [name for name in requirements.collections if name in schema]
        if not known:
            return fallback
        return requirements.model_copy(update={"collections": known})

    def _save(self, instruction: str, source: GeneratedSource, summary: Optional[str]) -> None:
        if self.store is None:
            return
        now = _utcnow()
        messages = [
            MessageRecord(user_message=turn.user_message, ai_response=turn.ai_response, timestamp=turn.timestamp)
            for turn in self.history
        ]
        if self.record is None:
            self.record = DashboardRecord(
                user_id=self.user_id,
                project_id=self.settings.project_id,
                title=instruction[:80],
                description=summary,
                code=source.text,
                data_requirements=self.requirements.model_dump() if self.requirements else None,
                messages=messages,
                created_at=now,
                updated_at=now,
            )
        else:
            self.record = self.record.model_copy(
                update={
                    "code": source.text,
                    "description": summary or self.record.description,
                    "data_requirements": self.requirements.model_dump() if self.requirements else None,
                    "messages": messages,
                    "updated_at": now,
                }
            )
        self.store.save_best_effort(self.record)


__all__ = ["ConversationTurn", "GenerationPipeline", "TurnResult"]
