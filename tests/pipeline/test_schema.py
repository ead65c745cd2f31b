from datetime import datetime

from flameview.pipeline.schema import CollectionSchema, discover_schema, field_types, schema_payload, value_type


def test_value_types():
    assert value_type(None) == "null"
    assert value_type(True) == "boolean"
    assert value_type(3) == "number"
    assert value_type(2.5) == "number"
    assert value_type("x") == "string"
    assert value_type(datetime(2024, 1, 1)) == "timestamp"
    assert value_type({"a": 1}) == "object"
    assert value_type([1]) == "array"


def test_field_types_skip_id_and_collect_every_type():
    types = field_types([{"id": 1, "total": 5, "note": None}, {"id": 2, "total": "n/a"}])
    assert types == {"total": ["number", "string"], "note": ["null"]}


def test_discover_schema_samples_and_skips_empty_collections():
    samples = {"orders": [{"total": index} for index in range(10)], "empty": []}
    schema = discover_schema(samples, sample_size=3)
    assert set(schema) == {"orders"}
    assert schema["orders"].document_count == 3
    assert len(schema["orders"].sample_documents) == 3


def test_schema_payload_uses_wire_keys():
    schema = {"orders": CollectionSchema(fields={"total": ["number"]}, document_count=1, sample_documents=[{"total": 1}])}
    assert schema_payload(schema) == {
        "orders": {"fields": {"total": ["number"]}, "documentCount": 1, "sampleDocuments": [{"total": 1}]}
    }


def test_schema_accepts_wire_keys():
    entry = CollectionSchema.model_validate({"fields": {}, "documentCount": 4, "sampleDocuments": []})
    assert entry.document_count == 4
