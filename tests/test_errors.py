"""
Tests for issues, SchemaError formatting and message resolution.
"""

from schemata import (
    MISSING,
    Issue,
    IssueCode,
    SchemaError,
    format_path,
    get_config,
    number,
    object_,
    string,
    union,
    validation_context,
)


def _failed(schema, value, **options):
    return schema.safe_parse(value, **options).error


class TestSchemaError:
    def test_is_exception_with_summary(self):
        error = _failed(string(), 1)
        assert isinstance(error, Exception)
        assert str(error) == "1 validation issue: Expected string, received number"

    def test_summary_includes_paths(self):
        error = _failed(object_({"a": string(), "b": number()}), {})
        assert str(error) == "2 validation issues: a: Required; b: Required"

    def test_flatten(self):
        schema = object_({"username": string(), "xp": number()}).refine(lambda v: True)
        error = _failed(schema, {"username": 42, "xp": "100"})
        assert error.flatten() == {
            "form_errors": [],
            "field_errors": {
                "username": ["Expected string, received number"],
                "xp": ["Expected number, received string"],
            },
        }

    def test_flatten_form_errors(self):
        error = _failed(number().refine(lambda x: False, "Nope"), 1)
        assert error.flatten() == {"form_errors": ["Nope"], "field_errors": {}}

    def test_prettify(self):
        error = _failed(object_({"user": object_({"name": string()})}), {"user": {"name": 1}})
        assert error.prettify() == "✖ Expected string, received number\n  → at user.name"

    def test_to_dicts(self):
        error = _failed(object_({"tags": string().array()}), {"tags": ["a", 2]})
        assert error.to_dicts() == [
            {
                "code": "invalid_type",
                "path": ["tags", 1],
                "message": "Expected string, received number",
                "expected": "string",
                "received": "number",
            }
        ]

    def test_union_branches_serialized(self):
        error = _failed(union([string(), number()]), None)
        [entry] = error.to_dicts()
        assert entry["code"] == "invalid_union"
        assert [branch[0]["expected"] for branch in entry["errors"]] == ["string", "number"]


class TestIssue:
    def test_with_prefix(self):
        issue = Issue(code=IssueCode.CUSTOM, path=("b",))
        assert issue.with_prefix("a", 0).path == ("a", 0, "b")

    def test_code_is_string(self):
        assert IssueCode.TOO_SMALL == "too_small"
        assert str(IssueCode.TOO_SMALL) == "too_small"

    def test_input_hidden_by_default(self):
        issue = _failed(string(), 1).issues[0]
        assert issue.input is MISSING

    def test_report_input(self):
        issue = _failed(string(), 1, report_input=True).issues[0]
        assert issue.input == 1
        assert issue.to_dict()["input"] == 1


class TestFormatPath:
    def test_formats(self):
        assert format_path(("user", "tags", 0)) == "user.tags[0]"
        assert format_path((0, "name")) == "[0].name"
        assert format_path(("has space",)) == "['has space']"
        assert format_path(()) == ""


class TestMessages:
    def test_per_call_error_map(self):
        error = _failed(string(), 1, error_map=lambda issue: "Bad input")
        assert error.issues[0].message == "Bad input"

    def test_error_map_fall_through(self):
        def error_map(issue):
            if issue.code == IssueCode.TOO_SMALL:
                return "Too short"
            return None

        schema = object_({"a": string().min(3), "b": string()})
        error = _failed(schema, {"a": "x", "b": 1}, error_map=error_map)
        assert [i.message for i in error.issues] == [
            "Too short",
            "Expected string, received number",
        ]

    def test_node_message_wins(self):
        error = _failed(string(message="Node"), 1, error_map=lambda issue: "Call")
        assert error.issues[0].message == "Node"

    def test_context_error_map(self):
        with validation_context(error_map=lambda issue: "Context"):
            assert _failed(string(), 1).issues[0].message == "Context"
        assert _failed(string(), 1).issues[0].message == "Expected string, received number"

    def test_call_map_beats_context_map(self):
        with validation_context(error_map=lambda issue: "Context"):
            error = _failed(string(), 1, error_map=lambda issue: "Call")
        assert error.issues[0].message == "Call"


class TestValidationContext:
    def test_defaults(self):
        config = get_config()
        assert config.error_map is None
        assert config.report_input is False
        assert config.abort_early is False

    def test_sets_and_restores(self):
        with validation_context(report_input=True, abort_early=True):
            assert get_config().report_input is True
            assert get_config().abort_early is True
        assert get_config().report_input is False

    def test_abort_early_from_context(self):
        schema = number().refine(lambda x: x > 0).refine(lambda x: x % 2 == 0)
        with validation_context(abort_early=True):
            error = _failed(schema, -3)
        assert len(error.issues) == 1

    def test_call_overrides_context(self):
        with validation_context(report_input=True):
            error = _failed(string(), 1, report_input=False)
        assert error.issues[0].input is MISSING

    def test_abort_early_still_checks_siblings(self):
        schema = object_({"a": string().min(3).email(), "b": number()})
        error = _failed(schema, {"a": "x", "b": "y"}, abort_early=True)
        assert [issue.path for issue in error.issues] == [("a",), ("b",)]

    def test_error_is_schema_error(self):
        assert isinstance(_failed(string(), 1), SchemaError)
