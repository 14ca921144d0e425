"""Schema System — fragments, schema values, compilation and YAML authoring.

Re-exports the building blocks so callers can do::

    from structured_output.schemas import Ref, array, enum_schema, load_fragment
"""

from .compiler import SchemaCompiler, compile_value
from .generator import infer_fragment_from_example, write_fragment
from .loader import clear_cache, load_fragment, load_fragments
from .values import Ref, SchemaFragment, array, enum_schema, enum_values

__all__ = [
    "Ref",
    "SchemaCompiler",
    "SchemaFragment",
    "array",
    "clear_cache",
    "compile_value",
    "enum_schema",
    "enum_values",
    "infer_fragment_from_example",
    "load_fragment",
    "load_fragments",
    "write_fragment",
]
