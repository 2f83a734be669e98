"""
Tests for objects, arrays, tuples, sets, records, maps, unions and intersections.
"""

from enum import Enum

import pytest

from schemata import (
    Err,
    IssueCode,
    Ok,
    SchemaDefinitionError,
    array,
    discriminated_union,
    enum_,
    integer,
    intersection,
    lazy,
    literal,
    loose_object,
    map_,
    number,
    object_,
    optional,
    partial_record,
    record,
    set_,
    strict_object,
    string,
    tuple_,
    union,
)


class Color(Enum):
    RED = "red"
    GREEN = "green"


@pytest.fixture
def user_schema():
    return object_(
        {
            "username": string(),
            "xp": number(),
            "email": optional(string().email()),
        }
    )


class TestObject:
    def test_valid(self, user_schema):
        data = {"username": "ada", "xp": 10}
        assert user_schema.parse(data) == data

    def test_each_field_reports(self, user_schema):
        result = user_schema.safe_parse({"username": 42, "xp": "100"})
        assert isinstance(result, Err)
        issues = result.error.issues
        assert [issue.path for issue in issues] == [("username",), ("xp",)]
        assert all(issue.code == IssueCode.INVALID_TYPE for issue in issues)

    def test_missing_required_field(self, user_schema):
        issue = user_schema.safe_parse({"username": "ada"}).error.issues[0]
        assert issue.path == ("xp",)
        assert issue.message == "Required"

    def test_absent_optional_field_is_omitted(self, user_schema):
        assert "email" not in user_schema.parse({"username": "ada", "xp": 1})

    def test_rejects_non_mapping(self, user_schema):
        issue = user_schema.safe_parse(["ada"]).error.issues[0]
        assert issue.expected == "object"
        assert issue.received == "array"

    def test_unknown_keys_stripped(self, user_schema):
        parsed = user_schema.parse({"username": "ada", "xp": 1, "admin": True})
        assert "admin" not in parsed

    def test_strict(self):
        schema = strict_object({"a": integer()})
        result = schema.safe_parse({"a": 1, "b": 2, "c": 3})
        issues = result.error.issues
        assert [issue.code for issue in issues] == [IssueCode.UNRECOGNIZED_KEYS] * 2
        assert [issue.path for issue in issues] == [("b",), ("c",)]
        assert issues[0].details["keys"] == ("b",)

    def test_passthrough(self):
        schema = loose_object({"a": integer()})
        assert schema.parse({"a": 1, "b": "x"}) == {"a": 1, "b": "x"}

    def test_catchall(self):
        schema = object_({"a": string()}).catchall(number())
        assert schema.parse({"a": "x", "b": 1}) == {"a": "x", "b": 1}
        issue = schema.safe_parse({"a": "x", "b": "y"}).error.issues[0]
        assert issue.path == ("b",)

    def test_nested_paths(self):
        schema = object_({"user": object_({"tags": array(string())})})
        issue = schema.safe_parse({"user": {"tags": ["a", 1]}}).error.issues[0]
        assert issue.path == ("user", "tags", 1)

    def test_shorthand_values(self):
        schema = object_({"name": str, "tags": [str], "role": "admin"})
        assert isinstance(schema.safe_parse({"name": "a", "tags": [], "role": "admin"}), Ok)
        assert isinstance(schema.safe_parse({"name": "a", "tags": [], "role": "user"}), Err)

    def test_default_field(self):
        schema = object_({"role": string().default("user")})
        assert schema.parse({}) == {"role": "user"}


class TestObjectMethods:
    def test_extend(self, user_schema):
        extended = user_schema.extend({"age": integer()})
        assert set(extended.shape) == {"username", "xp", "email", "age"}
        assert "age" not in user_schema.shape

    def test_extend_refined_object_fails(self, user_schema):
        with pytest.raises(SchemaDefinitionError):
            user_schema.refine(lambda v: True).extend({"age": integer()})

    def test_merge(self):
        merged = object_({"a": string()}).merge(strict_object({"b": number()}))
        assert set(merged.shape) == {"a", "b"}
        assert isinstance(merged.safe_parse({"a": "x", "b": 1, "c": 2}), Err)

    def test_pick_and_omit(self, user_schema):
        assert list(user_schema.pick("username").shape) == ["username"]
        assert list(user_schema.omit("email").shape) == ["username", "xp"]
        with pytest.raises(SchemaDefinitionError):
            user_schema.pick("nope")

    def test_partial(self, user_schema):
        assert user_schema.partial().parse({}) == {}
        partial = user_schema.partial("xp")
        assert isinstance(partial.safe_parse({"username": "ada"}), Ok)
        assert isinstance(partial.safe_parse({"xp": 1}), Err)

    def test_required(self, user_schema):
        schema = user_schema.required("email")
        issue = schema.safe_parse({"username": "ada", "xp": 1}).error.issues[0]
        assert issue.path == ("email",)

    def test_keyof(self, user_schema):
        keys = user_schema.keyof()
        assert keys.parse("xp") == "xp"
        assert isinstance(keys.safe_parse("admin"), Err)

    def test_policies_switch(self):
        schema = object_({"a": integer()})
        assert isinstance(schema.strict().safe_parse({"a": 1, "b": 2}), Err)
        assert schema.strict().strip().parse({"a": 1, "b": 2}) == {"a": 1}
        assert schema.passthrough().parse({"a": 1, "b": 2}) == {"a": 1, "b": 2}


class TestArray:
    def test_items(self):
        assert array(number()).parse([1, 2]) == [1, 2]
        issue = array(number()).safe_parse([1, "x", 3]).error.issues[0]
        assert issue.path == (1,)

    def test_all_items_reported(self):
        result = array(number()).safe_parse(["a", "b"])
        assert [issue.path for issue in result.error.issues] == [(0,), (1,)]

    def test_preserves_tuple_input(self):
        assert array(integer()).parse((1, 2)) == (1, 2)

    def test_size_constraints(self):
        schema = array(integer()).min(1).max(2)
        assert schema.safe_parse([]).error.issues[0].message == (
            "Too small: expected array to have >=1 items"
        )
        assert isinstance(schema.safe_parse([1, 2, 3]), Err)
        assert isinstance(array(integer()).nonempty().safe_parse([]), Err)
        assert isinstance(array(integer()).length(2).safe_parse([1, 2]), Ok)

    def test_method_form(self):
        assert string().array().parse(["a"]) == ["a"]


class TestTuple:
    def test_positions(self):
        schema = tuple_([string(), number()])
        assert schema.parse(["a", 1]) == ["a", 1]
        issue = schema.safe_parse(["a", "b"]).error.issues[0]
        assert issue.path == (1,)

    def test_arity(self):
        schema = tuple_([string(), number()])
        assert schema.safe_parse(["a"]).error.issues[0].code == IssueCode.TOO_SMALL
        assert schema.safe_parse(["a", 1, 2]).error.issues[0].code == IssueCode.TOO_BIG

    def test_trailing_optional(self):
        schema = tuple_([string(), number().optional()])
        assert schema.parse(["a"]) == ["a"]
        assert schema.min_length == 1

    def test_rest(self):
        schema = tuple_([string()], rest=number())
        assert schema.parse(("a", 1, 2)) == ("a", 1, 2)
        issue = schema.safe_parse(["a", 1, "x"]).error.issues[0]
        assert issue.path == (2,)


class TestSet:
    def test_elements(self):
        assert set_(integer()).parse({1, 2}) == {1, 2}
        assert isinstance(set_(integer()).parse(frozenset({1})), frozenset)

    def test_invalid_element_path(self):
        issue = set_(integer()).safe_parse({1, "a"}).error.issues[0]
        assert issue.path == ()

    def test_rejects_lists(self):
        assert set_(integer()).safe_parse([1]).error.issues[0].expected == "set"

    def test_size(self):
        assert isinstance(set_(integer()).min(2).safe_parse({1}), Err)
        assert isinstance(set_(integer()).size(1).safe_parse({1}), Ok)


class TestRecord:
    def test_values(self):
        schema = record(string(), number())
        assert schema.parse({"a": 1}) == {"a": 1}
        issue = schema.safe_parse({"a": "x"}).error.issues[0]
        assert issue.path == ("a",)

    def test_invalid_key(self):
        issue = record(string().min(2), number()).safe_parse({"a": 1}).error.issues[0]
        assert issue.code == IssueCode.INVALID_KEY
        assert issue.path == ("a",)
        assert issue.details["origin"] == "record"

    def test_enum_keys_are_exhaustive(self):
        schema = record(enum_(["a", "b"]), number())
        issue = schema.safe_parse({"a": 1}).error.issues[0]
        assert issue.path == ("b",)
        assert issue.message == "Required"

    def test_enum_class_keys(self):
        schema = record(enum_(Color), number())
        assert schema.parse({"red": 1, "green": 2}) == {Color.RED: 1, Color.GREEN: 2}
        assert schema.parse({Color.RED: 1, "green": 2}) == {Color.RED: 1, Color.GREEN: 2}

    def test_enum_class_keys_missing(self):
        issues = record(enum_(Color), number()).safe_parse({"red": 1}).error.issues
        assert [issue.path for issue in issues] == [("green",)]
        assert issues[0].message == "Required"

    def test_partial_record(self):
        schema = partial_record(enum_(["a", "b"]), number())
        assert schema.parse({"a": 1}) == {"a": 1}

    def test_literal_keys(self):
        schema = record(literal("x", "y"), integer())
        assert schema.parse({"x": 1, "y": 2}) == {"x": 1, "y": 2}

    def test_map(self):
        schema = map_(integer(), string())
        assert schema.parse({1: "a"}) == {1: "a"}
        issue = schema.safe_parse({"1": "a"}).error.issues[0]
        assert issue.code == IssueCode.INVALID_KEY
        assert issue.details["origin"] == "map"


class TestLazy:
    def test_recursive_structure(self):
        category = object_(
            {
                "name": string(),
                "children": array(lazy(lambda: category)),
            }
        )
        tree = {"name": "root", "children": [{"name": "leaf", "children": []}]}
        assert category.parse(tree) == tree

        bad = {"name": "root", "children": [{"name": 1, "children": []}]}
        issue = category.safe_parse(bad).error.issues[0]
        assert issue.path == ("children", 0, "name")

    def test_lazy_is_not_async(self):
        node = object_({"next": lazy(lambda: node).optional()})
        assert node.is_async is False


class TestUnion:
    def test_first_match_wins(self):
        schema = union([integer(), number()])
        assert schema.parse(1) == 1
        assert schema.parse(1.5) == 1.5

    def test_operator(self):
        schema = string() | number()
        assert schema.parse("a") == "a"
        assert schema.parse(2) == 2

    def test_object_options_keep_their_own_output(self):
        schema = union([object_({"a": string()}), object_({"b": number()})])
        assert schema.parse({"b": 1, "c": 2}) == {"b": 1}

    def test_no_match(self):
        result = union([string(), number()]).safe_parse(True)
        [issue] = result.error.issues
        assert issue.code == IssueCode.INVALID_UNION
        assert issue.message == "Invalid input"
        assert len(issue.details["errors"]) == 2
        assert issue.details["errors"][0][0].expected == "string"


@pytest.fixture
def shapes():
    return discriminated_union(
        "kind",
        [
            object_({"kind": literal("circle"), "radius": number()}),
            object_({"kind": literal("square"), "side": number()}),
        ],
    )


class TestDiscriminatedUnion:
    def test_dispatch(self, shapes):
        assert shapes.parse({"kind": "circle", "radius": 1}) == {"kind": "circle", "radius": 1}
        issue = shapes.safe_parse({"kind": "square", "radius": 1}).error.issues[0]
        assert issue.path == ("side",)

    def test_only_selected_option_runs(self):
        calls = []
        schema = discriminated_union(
            "kind",
            [
                object_({"kind": literal("a")}).refine(lambda v: calls.append("a") or True),
                object_({"kind": literal("b")}).refine(lambda v: calls.append("b") or True),
            ],
        )
        schema.parse({"kind": "b"})
        assert calls == ["b"]

    def test_unknown_discriminator(self, shapes):
        result = shapes.safe_parse({"kind": "triangle"})
        [issue] = result.error.issues
        assert issue.code == IssueCode.INVALID_UNION
        assert issue.path == ("kind",)
        assert issue.details["options"] == ["circle", "square"]

    def test_missing_discriminator(self, shapes):
        [issue] = shapes.safe_parse({"radius": 1}).error.issues
        assert issue.code == IssueCode.INVALID_UNION

    def test_rejects_non_mapping(self, shapes):
        assert shapes.safe_parse("circle").error.issues[0].expected == "object"

    def test_nested(self, shapes):
        schema = discriminated_union(
            "kind", [shapes, object_({"kind": literal("point")})]
        )
        assert schema.parse({"kind": "point"}) == {"kind": "point"}
        assert schema.parse({"kind": "square", "side": 2}) == {"kind": "square", "side": 2}
        assert schema.discriminator_values == ["circle", "square", "point"]

    def test_duplicate_values(self):
        with pytest.raises(SchemaDefinitionError):
            discriminated_union(
                "kind",
                [object_({"kind": literal("a")}), object_({"kind": literal("a", "b")})],
            )

    def test_option_without_discriminator(self):
        with pytest.raises(SchemaDefinitionError):
            discriminated_union("kind", [object_({"name": string()})])

    def test_non_object_option(self):
        with pytest.raises(SchemaDefinitionError):
            discriminated_union("kind", [string()])


class TestIntersection:
    def test_objects_merge(self):
        schema = intersection(object_({"a": string()}), object_({"b": number()}))
        assert schema.parse({"a": "x", "b": 1}) == {"a": "x", "b": 1}

    def test_both_sides_report(self):
        schema = object_({"a": string()}) & object_({"b": number()})
        issues = schema.safe_parse({}).error.issues
        assert [issue.path for issue in issues] == [("a",), ("b",)]

    def test_conflicting_outputs(self):
        schema = intersection(string().transform(str.upper), string())
        [issue] = schema.safe_parse("a").error.issues
        assert issue.code == IssueCode.INVALID_INTERSECTION_TYPES
        assert issue.message == "Intersection results could not be merged"

    def test_scalars(self):
        assert intersection(number(), integer()).parse(3) == 3
        assert isinstance(intersection(number(), integer()).safe_parse(1.5), Err)
