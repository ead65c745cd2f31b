"""Generation request pipeline and its collaborators."""

from .data_fetch import (
    DataFetchClient,
    DataRequirements,
    FilterClause,
    HttpDataFetchClient,
    InMemoryDataSource,
)
from .extraction import ExtractedResponse, extract_source
from .generation import GeminiClient, GenerationClient, SamplingConfig
from .orchestrator import ConversationTurn, GenerationPipeline, TurnResult
from .schema import CollectionSchema, discover_schema

__all__ = [
    "CollectionSchema",
    "ConversationTurn",
    "DataFetchClient",
    "DataRequirements",
    "ExtractedResponse",
    "FilterClause",
    "GeminiClient",
    "GenerationClient",
    "GenerationPipeline",
    "HttpDataFetchClient",
    "InMemoryDataSource",
    "SamplingConfig",
    "TurnResult",
    "discover_schema",
    "extract_source",
]
