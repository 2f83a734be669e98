"""
Tests for refinements, transforms, pipes and the default/prefault/catch wrappers.
"""

from types import MappingProxyType

import pytest

from schemata import (
    Err,
    IssueCode,
    Ok,
    SchemaDefinitionError,
    SchemaError,
    array,
    integer,
    number,
    object_,
    pipe,
    string,
)


class TestRefine:
    def test_predicate(self):
        even = number().refine(lambda x: x % 2 == 0, "Must be even")
        assert even.parse(4) == 4
        issue = even.safe_parse(3).error.issues[0]
        assert issue.code == IssueCode.CUSTOM
        assert issue.message == "Must be even"

    def test_default_message(self):
        issue = number().refine(lambda x: False).safe_parse(1).error.issues[0]
        assert issue.message == "Invalid input"

    def test_skipped_when_base_fails(self):
        calls = []
        schema = number().refine(lambda x: calls.append(x) or True)
        assert isinstance(schema.safe_parse("x"), Err)
        assert calls == []

    def test_non_abort_failures_continue(self):
        schema = (
            number()
            .refine(lambda x: x > 0, "Must be positive")
            .refine(lambda x: x % 2 == 0, "Must be even")
        )
        messages = [issue.message for issue in schema.safe_parse(-3).error.issues]
        assert messages == ["Must be positive", "Must be even"]

    def test_abort_stops_chain(self):
        schema = (
            number()
            .refine(lambda x: x > 0, "Must be positive", abort=True)
            .refine(lambda x: x % 2 == 0, "Must be even")
        )
        assert len(schema.safe_parse(-3).error.issues) == 1

    def test_abort_early_option(self):
        schema = number().refine(lambda x: x > 0).refine(lambda x: x % 2 == 0)
        assert len(schema.safe_parse(-3, abort_early=True).error.issues) == 1

    def test_path_and_params(self):
        schema = object_({"password": string(), "confirm": string()}).refine(
            lambda d: d["password"] == d["confirm"],
            "Passwords do not match",
            path=("confirm",),
            params={"rule": "match"},
        )
        issue = schema.safe_parse({"password": "a", "confirm": "b"}).error.issues[0]
        assert issue.path == ("confirm",)
        assert issue.details["params"] == {"rule": "match"}

    def test_object_refinement_waits_for_fields(self):
        schema = object_({"a": number(), "b": number()}).refine(lambda d: d["a"] < d["b"])
        issues = schema.safe_parse({"a": "x", "b": 1}).error.issues
        assert [issue.path for issue in issues] == [("a",)]

    def test_callable_message(self):
        schema = number().refine(lambda x: x > 0, lambda issue: f"bad {issue.code.value}")
        assert schema.safe_parse(-1).error.issues[0].message == "bad custom"

    def test_non_callable_rejected(self):
        with pytest.raises(SchemaDefinitionError):
            number().refine("nope")


class TestSuperRefine:
    def test_adds_many_issues(self):
        def check(value, ctx):
            if value["low"] > value["high"]:
                ctx.add_issue("low must not exceed high", path=("low",))
                ctx.add_issue("high must exceed low", path=("high",))

        schema = object_({"low": integer(), "high": integer()}).super_refine(check)
        assert isinstance(schema.safe_parse({"low": 1, "high": 2}), Ok)
        issues = schema.safe_parse({"low": 3, "high": 2}).error.issues
        assert [issue.path for issue in issues] == [("low",), ("high",)]

    def test_custom_code_and_details(self):
        def check(value, ctx):
            ctx.add_issue(code=IssueCode.TOO_BIG, origin="number", maximum=10, abort=True)

        schema = number().super_refine(check).refine(lambda x: False)
        issues = schema.safe_parse(50).error.issues
        assert len(issues) == 1
        assert issues[0].code == IssueCode.TOO_BIG
        assert issues[0].message == "Too big: expected number to be <=10"


class TestTransform:
    def test_changes_type(self):
        assert string().transform(len).parse("abc") == 3

    def test_chained(self):
        schema = string().transform(str.strip).transform(len)
        assert schema.parse("  ab ") == 2

    def test_not_run_after_issue(self):
        calls = []
        schema = string().min(5).transform(lambda s: calls.append(s) or s)
        result = schema.safe_parse("ab")
        assert [issue.code for issue in result.error.issues] == [IssueCode.TOO_SMALL]
        assert calls == []

    def test_refine_after_transform_sees_output(self):
        schema = string().transform(len).refine(lambda n: n > 2, "Too short")
        assert schema.parse("abc") == 3
        assert schema.safe_parse("ab").error.issues[0].message == "Too short"

    def test_in_object_field(self):
        schema = object_({"n": string().transform(int)})
        assert schema.parse({"n": "5"}) == {"n": 5}

    def test_exceptions_propagate(self):
        schema = string().transform(int)
        with pytest.raises(ValueError):
            schema.safe_parse("abc")

    def test_overwrite(self):
        assert string().overwrite(lambda s: s * 2).parse("ab") == "abab"


class TestPipe:
    def test_output_feeds_target(self):
        schema = string().transform(len).pipe(number().gt(2))
        assert schema.parse("abcd") == 4
        issue = schema.safe_parse("a").error.issues[0]
        assert issue.code == IssueCode.TOO_SMALL

    def test_source_failure_stops(self):
        schema = pipe(string(), string().min(3))
        assert len(schema.safe_parse(1).error.issues) == 1

    def test_pipe_factory(self):
        schema = pipe(string(coerce=True), number(coerce=True))
        assert schema.parse(42) == 42


class TestDefault:
    def test_default_on_missing(self):
        assert string().default("x").safe_parse() == Ok("x")

    def test_default_not_validated(self):
        assert string().default(5).parse() == 5

    def test_present_value_validated(self):
        assert isinstance(string().default("x").safe_parse(1), Err)

    def test_none_is_not_missing(self):
        assert isinstance(string().default("x").safe_parse(None), Err)

    def test_callable_default(self):
        schema = array(string()).default(list)
        first, second = schema.parse(), schema.parse()
        assert first == [] and first is not second

    def test_is_optional(self):
        assert string().default("x").is_optional()
        assert not string().is_optional()


class TestPrefault:
    def test_prefault_is_validated_and_transformed(self):
        schema = string().transform(str.upper).prefault("x")
        assert schema.parse() == "X"

    def test_invalid_prefault_fails(self):
        assert isinstance(string().prefault(5).safe_parse(), Err)


class TestCatch:
    def test_catch_value(self):
        assert number().catch(42).safe_parse("bad") == Ok(42)

    def test_valid_input_passes_through(self):
        assert number().catch(42).parse(7) == 7

    def test_callable_receives_error(self):
        schema = number().catch(lambda error: len(error.issues))
        assert schema.parse("bad") == 1

    def test_catch_in_object(self):
        schema = object_({"n": number().catch(0), "s": string()})
        result = schema.safe_parse({"n": "x", "s": 1})
        assert [issue.path for issue in result.error.issues] == [("s",)]


class TestReadonly:
    def test_object_output_is_frozen(self):
        parsed = object_({"a": integer()}).readonly().parse({"a": 1})
        assert isinstance(parsed, MappingProxyType)
        with pytest.raises(TypeError):
            parsed["a"] = 2

    def test_array_output_is_tuple(self):
        assert array(integer()).readonly().parse([1, 2]) == (1, 2)


class TestMetadata:
    def test_describe_and_meta(self):
        schema = string().describe("A name").meta(title="Name").brand("Name")
        assert schema.description == "A name"
        assert schema.metadata == {"title": "Name"}
        assert schema.brand_tag == "Name"
        assert schema.parse("ada") == "ada"

    def test_with_message(self):
        schema = string().with_message("Need text")
        assert schema.safe_parse(1).error.issues[0].message == "Need text"

    def test_factory_message(self):
        schema = string(message=lambda issue: f"got {issue.received}")
        assert schema.safe_parse(1).error.issues[0].message == "got number"

    def test_modifiers_return_new_nodes(self):
        base = string()
        refined = base.min(1)
        assert base.checks == ()
        assert len(refined.checks) == 1

    def test_parse_raises(self):
        with pytest.raises(SchemaError):
            number().parse("x")
