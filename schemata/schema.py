"""
Schema operations for schemata.

Provides validate(), to_pydantic() and model_schema() for pydantic interop.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from .checks import Check
from .composites import (
    ArraySchema,
    ObjectSchema,
    RecordSchema,
    SetSchema,
    TupleSchema,
    UnionSchema,
    UnknownKeys,
)
from .context import ParseContext
from .core import (
    CatchSchema,
    DefaultSchema,
    NullableSchema,
    OptionalSchema,
    PrefaultSchema,
    ReadonlySchema,
    Result,
    Schema,
    WrapperSchema,
)
from .engine import Payload
from .factories import to_schema
from .issues import IssueCode, SchemaDefinitionError, describe_type
from .primitives import (
    AnySchema,
    BooleanSchema,
    DateSchema,
    DateTimeSchema,
    EnumSchema,
    InstanceOfSchema,
    IntegerSchema,
    LiteralSchema,
    NoneSchema,
    NumberSchema,
    StringSchema,
)


def validate(data: Any, schema: Any) -> Result:
    """
    Validate data against a schema.

    Args:
        data: The value to validate
        schema: A Schema, or shorthand accepted by to_schema()

    Returns:
        Ok(parsed) if validation passes
        Err(SchemaError) if validation fails

    Usage:
        schema = {
            "name": string().min(1),
            "email": optional(string().email()),
            "age": integer().gte(0),
        }
        result = validate({"name": "Alice", "age": 30}, schema)
    """
    return to_schema(schema).safe_parse(data)


# =============================================================================
# Pydantic models as schemas
# =============================================================================

# Pydantic error types that map to something other than invalid_type/custom
_PYDANTIC_CODES = {
    "missing": IssueCode.INVALID_TYPE,
    "literal_error": IssueCode.INVALID_LITERAL,
    "enum": IssueCode.INVALID_LITERAL,
    "too_short": IssueCode.TOO_SMALL,
    "string_too_short": IssueCode.TOO_SMALL,
    "greater_than": IssueCode.TOO_SMALL,
    "greater_than_equal": IssueCode.TOO_SMALL,
    "too_long": IssueCode.TOO_BIG,
    "string_too_long": IssueCode.TOO_BIG,
    "less_than": IssueCode.TOO_BIG,
    "less_than_equal": IssueCode.TOO_BIG,
    "string_pattern_mismatch": IssueCode.INVALID_FORMAT,
    "multiple_of": IssueCode.NOT_MULTIPLE_OF,
    "extra_forbidden": IssueCode.UNRECOGNIZED_KEYS,
    "union_tag_invalid": IssueCode.INVALID_UNION,
    "union_tag_not_found": IssueCode.INVALID_UNION,
}


def _issue_code(error_type: str) -> IssueCode:
    if error_type in _PYDANTIC_CODES:
        return _PYDANTIC_CODES[error_type]
    if error_type.endswith(("_type", "_parsing")):
        return IssueCode.INVALID_TYPE
    return IssueCode.CUSTOM


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class ModelSchema(Schema):
    """
    Validates with a pydantic model.

    Parsing returns a model instance; encoding dumps an instance back to a
    dict. Pydantic errors are reported as issues with their ``loc`` as path.
    """

    model: type[BaseModel]

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not ctx.forward:
            if not isinstance(payload.value, self.model):
                return self._invalid_type(payload, ctx, self.model.__name__)
            payload.value = payload.value.model_dump()
            return payload

        if not isinstance(payload.value, (dict, self.model)):
            return self._invalid_type(payload, ctx, "object")
        try:
            payload.value = self.model.model_validate(payload.value)
        except ValidationError as e:
            payload.issues.extend(self._issues(e, ctx))
            payload.aborted = True
        return payload

    def _issues(self, error: ValidationError, ctx: ParseContext) -> list:
        issues = []
        for err in error.errors():
            code = _issue_code(err["type"])
            value = err.get("input")
            expected = received = None
            if code is IssueCode.INVALID_TYPE:
                received = "missing" if err["type"] == "missing" else describe_type(value)
                expected = err["type"].removesuffix("_type").removesuffix("_parsing")
            issues.append(
                ctx.issue(
                    code,
                    value,
                    self.message,
                    path=tuple(err["loc"]),
                    expected=expected,
                    received=received,
                    details={"pydantic_type": err["type"], **(err.get("ctx") or {})},
                    fallback=err["msg"],
                )
            )
        return issues


def model_schema(model: type[BaseModel]) -> ModelSchema:
    """
    Schema for a pydantic model class.

    Usage:
        class User(BaseModel):
            name: str

        model_schema(User).parse({"name": "Alice"})   # User(name="Alice")
    """
    if not (isinstance(model, type) and issubclass(model, BaseModel)):
        raise SchemaDefinitionError("model_schema() requires a pydantic BaseModel subclass")
    return ModelSchema(model=model)


# =============================================================================
# Schemas as pydantic models
# =============================================================================

_CHECK_CONSTRAINTS = {
    "gte": ("ge", "minimum"),
    "gt": ("gt", "minimum"),
    "lte": ("le", "maximum"),
    "lt": ("lt", "maximum"),
    "multiple_of": ("multiple_of", "divisor"),
    "regex": ("pattern", "pattern"),
}


def _constraints(schema: Schema) -> dict[str, Any]:
    """Translate a node's built-in checks into pydantic Field arguments."""
    constraints: dict[str, Any] = {}
    for step in schema.checks:
        if not isinstance(step, Check):
            continue
        if step.kind == "min_size":
            constraints["min_length"] = step.details["minimum"]
        elif step.kind == "max_size":
            constraints["max_length"] = step.details["maximum"]
        elif step.kind in _CHECK_CONSTRAINTS:
            name, detail = _CHECK_CONSTRAINTS[step.kind]
            constraints[name] = step.details[detail]
    if schema.description:
        constraints["description"] = schema.description
    return constraints


def _model_name(parent: str, key: str) -> str:
    return parent + "".join(part.capitalize() for part in str(key).split("_"))


def _annotation(schema: Schema, name: str) -> Any:
    """Build a type annotation (with Field constraints) for a schema node."""
    base: Any
    match schema:
        case OptionalSchema(inner=inner) | NullableSchema(inner=inner):
            return Optional[_annotation(inner, name)]
        case WrapperSchema(inner=inner):
            return _annotation(inner, name)
        case StringSchema():
            base = str
        case IntegerSchema():
            base = int
        case NumberSchema():
            base = float
        case BooleanSchema():
            base = bool
        case DateSchema():
            base = date
        case DateTimeSchema():
            base = datetime
        case NoneSchema():
            return None
        case AnySchema():
            return Any
        case LiteralSchema(values=values):
            return Literal[values]
        case EnumSchema(enum_class=enum_class, entries=entries):
            return enum_class if enum_class is not None else Literal[entries]
        case ObjectSchema():
            base = _object_model(name, schema)
        case ArraySchema(element=element):
            base = list[_annotation(element, name)]  # type: ignore[misc]
        case SetSchema(element=element):
            base = set[_annotation(element, name)]  # type: ignore[misc]
        case TupleSchema(items=items, rest=None):
            base = tuple[tuple(_annotation(item, name) for item in items)]  # type: ignore[misc]
        case RecordSchema(key_schema=key, value_schema=value):
            base = dict[_annotation(key, name), _annotation(value, name)]  # type: ignore[misc]
        case UnionSchema(options=options):
            return Union[tuple(_annotation(option, name) for option in options)]
        case ModelSchema(model=model):
            return model
        case InstanceOfSchema(cls=cls):
            return cls
        case _:
            return Any

    constraints = _constraints(schema)
    if constraints:
        return Annotated[base, Field(**constraints)]
    return base


def _extract_pydantic_field(schema: Schema, name: str) -> tuple[Any, Any]:
    """Extract pydantic field type and default from a schema."""
    match schema:
        case DefaultSchema(inner=inner, default_value=value):
            if callable(value):
                return (_annotation(inner, name), Field(default_factory=value))
            return (_annotation(inner, name), value)
        case PrefaultSchema(inner=inner) | CatchSchema(inner=inner) | ReadonlySchema(inner=inner):
            return _extract_pydantic_field(inner, name)
        case OptionalSchema():
            return (_annotation(schema, name), None)
    return (_annotation(schema, name), ...)


_EXTRA = {
    UnknownKeys.STRIP: "ignore",
    UnknownKeys.STRICT: "forbid",
    UnknownKeys.PASSTHROUGH: "allow",
}


def _object_model(name: str, schema: ObjectSchema) -> type[BaseModel]:
    fields: dict[str, Any] = {}
    for key, value in schema.shape.items():
        fields[key] = _extract_pydantic_field(value, _model_name(name, key))

    extra = "allow" if schema.catchall_schema is not None else _EXTRA[schema.unknown_keys]
    config = ConfigDict(extra=extra, arbitrary_types_allowed=True)
    return create_model(name, __config__=config, **fields)


def to_pydantic(name: str, schema: Any) -> type[BaseModel]:
    """
    Compile an object schema to a pydantic model.

    Constraints (length, bounds, pattern, multiple_of) become Field
    arguments; refinements and transforms have no pydantic counterpart and
    are dropped. Nested objects become nested models.

    Args:
        name: Name of the generated model class
        schema: An object schema, or dict shorthand

    Returns:
        A pydantic BaseModel subclass

    Usage:
        User = to_pydantic("User", object_({
            "name": string().min(1),
            "email": string().email().optional(),
        }))
        user = User(name="Alice")
    """
    node = to_schema(schema)
    if not isinstance(node, ObjectSchema):
        raise TypeError("Schema must be an object schema")
    return _object_model(name, node)
