"""
JSON Schema (draft 2020-12) export.

Usage:
    from schemata import object_, string, to_json_schema

    to_json_schema(object_({"name": string().min(1)}))
    # {"$schema": "...", "type": "object",
    #  "properties": {"name": {"type": "string", "minLength": 1}},
    #  "required": ["name"], "additionalProperties": False}
"""

from __future__ import annotations

import re
from typing import Any, Literal

import structlog

from .checks import Check, Transform
from .composites import (
    ArraySchema,
    DiscriminatedUnionSchema,
    IntersectionSchema,
    ObjectSchema,
    RecordSchema,
    SetSchema,
    TupleSchema,
    UnionSchema,
    UnknownKeys,
)
from .core import (
    CatchSchema,
    DefaultSchema,
    LazySchema,
    NullableSchema,
    OptionalSchema,
    PipeSchema,
    PrefaultSchema,
    ReadonlySchema,
    Schema,
    WrapperSchema,
)
from .functions import CodecSchema
from .primitives import (
    AnySchema,
    BooleanSchema,
    DateSchema,
    DateTimeSchema,
    EnumSchema,
    IntegerSchema,
    LiteralSchema,
    NeverSchema,
    NoneSchema,
    NumberSchema,
    StringBoolSchema,
    StringSchema,
)
from .schema import ModelSchema

logger = structlog.get_logger(__name__)

DIALECT = "https://json-schema.org/draft/2020-12/schema"

IO = Literal["input", "output"]
Unrepresentable = Literal["throw", "any"]

_STRING_FORMATS = {
    "email": "email",
    "url": "uri",
    "uuid": "uuid",
    "ipv4": "ipv4",
    "ipv6": "ipv6",
    "iso_datetime": "date-time",
    "iso_date": "date",
    "iso_time": "time",
}

_NUMBER_KEYWORDS = {
    "gte": ("minimum", "minimum"),
    "gt": ("exclusiveMinimum", "minimum"),
    "lte": ("maximum", "maximum"),
    "lt": ("exclusiveMaximum", "maximum"),
    "multiple_of": ("multipleOf", "divisor"),
}


class UnrepresentableError(ValueError):
    """Raised when a schema node has no JSON Schema equivalent."""


def _check_pattern(check: Check) -> str | None:
    details = check.details
    match check.kind:
        case "regex":
            return details["pattern"]
        case "starts_with":
            return "^" + re.escape(details["prefix"])
        case "ends_with":
            return re.escape(details["suffix"]) + "$"
        case "includes":
            return re.escape(details["includes"])
        case "lowercase":
            return "^[^A-Z]*$"
        case "uppercase":
            return "^[^a-z]*$"
    return None


def _checks(schema: Schema) -> list[Check]:
    return [step for step in schema.checks if isinstance(step, Check)]


class JsonSchemaGenerator:
    """
    Walks a schema graph and builds the JSON Schema document.

    Lazy nodes become entries in ``$defs`` referenced with ``$ref``, so
    recursive schemas terminate.
    """

    def __init__(self, io: IO = "output", unrepresentable: Unrepresentable = "throw"):
        if io not in ("input", "output"):
            raise ValueError(f"io must be 'input' or 'output', got {io!r}")
        if unrepresentable not in ("throw", "any"):
            raise ValueError(f"unrepresentable must be 'throw' or 'any', got {unrepresentable!r}")
        self.io = io
        self.unrepresentable = unrepresentable
        self.defs: dict[str, Any] = {}
        self._refs: dict[int, str] = {}

    def document(self, schema: Schema) -> dict[str, Any]:
        result = {"$schema": DIALECT, **self.generate(schema)}
        if self.defs:
            result["$defs"] = self.defs
        return result

    def generate(self, schema: Schema) -> dict[str, Any]:
        if self.io == "output" and any(isinstance(s, Transform) for s in schema.checks):
            return self._unrepresentable(schema, "transform output")

        result = self._node(schema)
        if schema.description:
            result["description"] = schema.description
        if schema.metadata:
            result.update(schema.metadata)
        return result

    def _unrepresentable(self, schema: Schema, what: str | None = None) -> dict[str, Any]:
        what = what or type(schema).__name__
        if self.unrepresentable == "throw":
            raise UnrepresentableError(f"{what} cannot be represented in JSON Schema")
        logger.warning("json_schema_unrepresentable", node=what)
        return {}

    def _node(self, schema: Schema) -> dict[str, Any]:
        match schema:
            case StringSchema():
                return self._string(schema)
            case NumberSchema():
                return self._number(schema)
            case StringBoolSchema(truthy=truthy, falsy=falsy):
                if self.io == "input":
                    return {"type": "string", "enum": [*truthy, *falsy]}
                return {"type": "boolean"}
            case BooleanSchema():
                return {"type": "boolean"}
            case NoneSchema():
                return {"type": "null"}
            case AnySchema():
                return {}
            case NeverSchema():
                return {"not": {}}
            case DateSchema():
                return {"type": "string", "format": "date"}
            case DateTimeSchema():
                return {"type": "string", "format": "date-time"}
            case LiteralSchema(values=values):
                if len(values) == 1:
                    return {"const": values[0]}
                return {"enum": list(values)}
            case EnumSchema(entries=entries):
                result: dict[str, Any] = {"enum": list(entries)}
                if all(isinstance(e, str) for e in entries):
                    result = {"type": "string", **result}
                return result
            case ObjectSchema():
                return self._object(schema)
            case ArraySchema(element=element):
                return self._sized({"type": "array", "items": self.generate(element)}, schema)
            case SetSchema(element=element):
                result = {"type": "array", "uniqueItems": True, "items": self.generate(element)}
                return self._sized(result, schema)
            case TupleSchema():
                return self._tuple(schema)
            case RecordSchema():
                return self._record(schema)
            case UnionSchema(options=options):
                return {"anyOf": [self.generate(option) for option in options]}
            case DiscriminatedUnionSchema(options=options):
                return {"oneOf": [self.generate(option) for option in options]}
            case IntersectionSchema(left=left, right=right):
                return {"allOf": [self.generate(left), self.generate(right)]}
            case OptionalSchema(inner=inner):
                return self.generate(inner)
            case NullableSchema(inner=inner):
                return {"anyOf": [self.generate(inner), {"type": "null"}]}
            case DefaultSchema(inner=inner, default_value=value):
                return self._with_default(inner, value)
            case PrefaultSchema(inner=inner, prefault_value=value):
                if self.io == "input":
                    return self._with_default(inner, value)
                return self.generate(inner)
            case CatchSchema(inner=inner):
                return self.generate(inner)
            case ReadonlySchema(inner=inner):
                return {**self.generate(inner), "readOnly": True}
            case WrapperSchema(inner=inner):
                return self.generate(inner)
            case PipeSchema(source=source, target=target):
                return self.generate(source if self.io == "input" else target)
            case CodecSchema(input_schema=source, output_schema=target):
                return self.generate(source if self.io == "input" else target)
            case LazySchema():
                return self._lazy(schema)
            case ModelSchema(model=model):
                return self._model(model)
        return self._unrepresentable(schema)

    def _string(self, schema: StringSchema) -> dict[str, Any]:
        result: dict[str, Any] = {"type": "string"}
        patterns: list[str] = []
        for check in _checks(schema):
            if check.kind == "min_size":
                result["minLength"] = check.details["minimum"]
            elif check.kind == "max_size":
                result["maxLength"] = check.details["maximum"]
            elif check.kind in _STRING_FORMATS:
                result["format"] = _STRING_FORMATS[check.kind]
            elif check.kind == "base64":
                result["contentEncoding"] = "base64"
            else:
                pattern = _check_pattern(check)
                if pattern is not None:
                    patterns.append(pattern)
        if len(patterns) == 1:
            result["pattern"] = patterns[0]
        elif patterns:
            result["allOf"] = [{"pattern": p} for p in patterns]
        return result

    def _number(self, schema: NumberSchema) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "integer" if isinstance(schema, IntegerSchema) else "number"
        }
        for check in _checks(schema):
            if check.kind in _NUMBER_KEYWORDS:
                keyword, detail = _NUMBER_KEYWORDS[check.kind]
                result[keyword] = check.details[detail]
        return result

    def _sized(self, result: dict[str, Any], schema: Schema) -> dict[str, Any]:
        for check in _checks(schema):
            if check.kind == "min_size":
                result["minItems"] = check.details["minimum"]
            elif check.kind == "max_size":
                result["maxItems"] = check.details["maximum"]
        return result

    def _is_optional(self, schema: Schema) -> bool:
        # Defaulted fields are always present in the output
        if self.io == "output" and isinstance(schema, (DefaultSchema, PrefaultSchema, CatchSchema)):
            return False
        return schema._accepts_missing()

    def _object(self, schema: ObjectSchema) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "object",
            "properties": {key: self.generate(value) for key, value in schema.shape.items()},
        }
        required = [key for key, value in schema.shape.items() if not self._is_optional(value)]
        if required:
            result["required"] = required

        if schema.catchall_schema is not None:
            result["additionalProperties"] = self.generate(schema.catchall_schema)
        elif schema.unknown_keys is UnknownKeys.STRICT:
            result["additionalProperties"] = False
        elif schema.unknown_keys is UnknownKeys.STRIP and self.io == "output":
            result["additionalProperties"] = False
        return result

    def _tuple(self, schema: TupleSchema) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "array",
            "prefixItems": [self.generate(item) for item in schema.items],
        }
        if schema.min_length:
            result["minItems"] = schema.min_length
        if schema.rest is not None:
            result["items"] = self.generate(schema.rest)
        else:
            result["items"] = False
            result["maxItems"] = len(schema.items)
        return result

    def _record(self, schema: RecordSchema) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "object",
            "additionalProperties": self.generate(schema.value_schema),
        }
        keys = self.generate(schema.key_schema)
        if keys.get("type") not in (None, "string") and "enum" not in keys and "const" not in keys:
            return self._unrepresentable(schema, "non-string record keys")
        if keys:
            result["propertyNames"] = keys
        required = schema._expected_keys()
        if required:
            result["required"] = [wire for wire, _ in required]
        return result

    def _with_default(self, inner: Schema, value: Any) -> dict[str, Any]:
        result = self.generate(inner)
        result["default"] = value() if callable(value) else value
        return result

    def _lazy(self, schema: LazySchema) -> dict[str, Any]:
        key = id(schema)
        if key not in self._refs:
            target = schema.schema
            name = (target.metadata or {}).get("id") or f"schema{len(self._refs)}"
            self._refs[key] = name
            self.defs[name] = self.generate(target)
        return {"$ref": f"#/$defs/{self._refs[key]}"}

    def _model(self, model: Any) -> dict[str, Any]:
        mode = "validation" if self.io == "input" else "serialization"
        result = model.model_json_schema(
            mode=mode, ref_template="#/$defs/{model}"
        )
        self.defs.update(result.pop("$defs", {}))
        return result


def to_json_schema(
    schema: Schema,
    *,
    io: IO = "output",
    unrepresentable: Unrepresentable = "throw",
) -> dict[str, Any]:
    """
    Convert a schema to a JSON Schema document.

    Args:
        schema: The schema to convert
        io: "output" describes parsed values, "input" describes accepted input
            (pipes and codecs use their input side, defaults are optional)
        unrepresentable: "throw" raises UnrepresentableError for nodes with no
            JSON Schema form (functions, transforms in output mode, custom
            predicates, ...); "any" emits ``{}`` for them instead

    Returns:
        A dict ready for json.dumps()
    """
    return JsonSchemaGenerator(io, unrepresentable).document(schema)
