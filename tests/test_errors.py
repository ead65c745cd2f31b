from flameview.errors import (
    BuildError,
    CollaboratorError,
    ExtractionFailure,
    FlameViewError,
    RuntimeFault,
    SanitizationRejected,
    SourcePosition,
    TranspileError,
)


def test_error_format_includes_metadata() -> None:
    err = TranspileError(
        "Unterminated <div> element",
        path="dashboard.pyx",
        line=4,
        column=2,
        hint="Close it with </div>",
    )
    formatted = err.format()
    assert "Unterminated <div> element" in formatted
    assert "dashboard.pyx:4:2" in formatted
    assert "FV200" in formatted
    assert "Close it with" in formatted


def test_error_format_handles_missing_location() -> None:
    err = FlameViewError("Something failed")
    formatted = err.format()
    assert formatted == "Something failed"


def test_code_override_and_line_only_location() -> None:
    err = BuildError("Name 'fetch' is not available to components", line=3, code="FV301")
    assert err.format() == "Name 'fetch' is not available to components (line 3; FV301 build)"


def test_categories_are_stable() -> None:
    assert SanitizationRejected("x").category == "sanitization"
    assert TranspileError("x").category == "transpile"
    assert BuildError("x").category == "build"
    assert RuntimeFault("x").category == "runtime"
    assert ExtractionFailure("x").category == "extraction"
    assert CollaboratorError("x").category == "collaborator"


def test_collaborator_error_carries_status() -> None:
    err = CollaboratorError("Gemini API error", collaborator="gemini", status_code=429)
    assert err.collaborator == "gemini"
    assert err.status_code == 429
    assert isinstance(err, FlameViewError)
    assert str(err) == "Gemini API error"


def test_sanitization_rejected_keeps_rule() -> None:
    err = SanitizationRejected("Disallowed construct 'eval'", rule="eval")
    assert err.rule == "eval"
    assert err.code == "FV100"


def test_position_reads_naturally_with_and_without_a_path() -> None:
    assert str(SourcePosition(path="dash.pyx", line=2, column=7)) == "dash.pyx:2:7"
    assert str(SourcePosition(line=2, column=7)) == "line 2, column 7"
    assert str(SourcePosition(path="dash.pyx")) == "dash.pyx"
    assert not SourcePosition()


def test_collaborator_error_format_names_the_service() -> None:
    err = CollaboratorError("Gemini API error (status 503)", collaborator="gemini", status_code=503)
    assert err.format() == "Gemini API error (status 503) (FV600 collaborator; from gemini; HTTP 503)"


def test_sanitization_format_names_the_rule() -> None:
    err = SanitizationRejected("Disallowed construct 'eval'", rule="eval", line=1, column=9)
    assert err.format() == "Disallowed construct 'eval' (line 1, column 9; FV100 sanitization; rule 'eval')"
