"""
Schemata - composable schema declaration and validation.

Usage:
    from schemata import object_, string, number, optional

    user = object_({
        "username": string().min(3),
        "xp": number().nonnegative(),
        "email": optional(string().email()),
    })

    result = user.safe_parse({"username": "ada", "xp": 10})
    if result.success:
        print(result.value)
    else:
        print(result.error.prettify())

    user.parse(data)   # returns the value or raises SchemaError
"""

from . import codecs, coerce
from .checks import RefinementContext
from .composites import (
    ArraySchema,
    DiscriminatedUnionSchema,
    IntersectionSchema,
    MapSchema,
    ObjectSchema,
    RecordSchema,
    SetSchema,
    TupleSchema,
    UnionSchema,
    UnknownKeys,
)
from .context import ParseConfig, get_config, validation_context
from .core import LazySchema, PipeSchema, Schema
from .factories import (
    any_,
    array,
    boolean,
    codec,
    custom,
    date_,
    datetime_,
    discriminated_union,
    enum_,
    function,
    instance_of,
    integer,
    intersection,
    lazy,
    literal,
    loose_object,
    map_,
    nan,
    never,
    none,
    nullable,
    nullish,
    number,
    object_,
    optional,
    partial_record,
    pipe,
    record,
    set_,
    strict_object,
    string,
    stringbool,
    to_schema,
    tuple_,
    undefined,
    union,
    unknown,
)
from .functions import CodecSchema, FunctionSchema
from .issues import (
    AsyncParseError,
    EncodeError,
    Issue,
    IssueCode,
    SchemaDefinitionError,
    SchemaError,
    format_path,
)
from .json_schema import UnrepresentableError, to_json_schema
from .schema import ModelSchema, model_schema, to_pydantic, validate
from .types import MISSING, Err, Ok

__all__ = [
    # Result types
    "Ok",
    "Err",
    "MISSING",
    # Primitives
    "string",
    "number",
    "integer",
    "boolean",
    "stringbool",
    "nan",
    "date_",
    "datetime_",
    "none",
    "undefined",
    "any_",
    "unknown",
    "never",
    "literal",
    "enum_",
    "custom",
    "instance_of",
    # Composites
    "object_",
    "strict_object",
    "loose_object",
    "array",
    "tuple_",
    "set_",
    "record",
    "partial_record",
    "map_",
    "union",
    "discriminated_union",
    "intersection",
    # Wrappers
    "optional",
    "nullable",
    "nullish",
    "lazy",
    "pipe",
    "function",
    "codec",
    "to_schema",
    # Namespaces
    "coerce",
    "codecs",
    # Schema classes
    "Schema",
    "ObjectSchema",
    "ArraySchema",
    "TupleSchema",
    "SetSchema",
    "RecordSchema",
    "MapSchema",
    "UnionSchema",
    "DiscriminatedUnionSchema",
    "IntersectionSchema",
    "PipeSchema",
    "LazySchema",
    "FunctionSchema",
    "CodecSchema",
    "ModelSchema",
    "UnknownKeys",
    "RefinementContext",
    # Errors
    "Issue",
    "IssueCode",
    "SchemaError",
    "AsyncParseError",
    "SchemaDefinitionError",
    "EncodeError",
    "UnrepresentableError",
    "format_path",
    # Configuration
    "validation_context",
    "get_config",
    "ParseConfig",
    # Schema operations
    "validate",
    "to_pydantic",
    "model_schema",
    "to_json_schema",
]
