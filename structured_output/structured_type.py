"""Type Annotator — pair a class with a compiled schema.

``attach`` (and the ``@structured`` decorator built on it) wraps a class
in a ``StructuredType`` by composition: the wrapper holds the fragment,
the class as its factory, the registry, constructor metadata, and the
schema/validator caches. The class itself is returned unchanged apart
from a ``__structured__`` attribute and three convenience classmethods
(``get_schema``, ``validate``, ``hydrate``), so instances keep their
identity and behaviour and ``isinstance`` works on hydrated results.

Usage::

    @structured(
        description="A single step in the reasoning process.",
        properties={"explanation": "string", "output": "string"},
        required=["explanation", "output"],
    )
    class Step:
        def __init__(self, explanation, output):
            self.explanation = explanation
            self.output = output

    Step.get_schema()
    Step.hydrate('{"explanation": "e1", "output": "o1"}')
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable

from . import config
from .errors import SchemaConfigurationError
from .hydrator import (
    ConstructorParameter,
    constructor_parameters,
    hydrate as hydrate_recipe,
    parameters_from_declaration,
)
from .registry import SchemaRegistry, default_registry
from .schemas.compiler import SchemaCompiler
from .schemas.values import Ref, SchemaFragment
from .validator import SchemaValidator, ValidationOutcome, compile_validator, validate as validate_candidate

log = logging.getLogger(__name__)


def _doc_summary(obj: Any) -> str:
    doc = getattr(obj, "__doc__", None) or ""
    # dataclasses synthesise "Name(field: type, ...)" when undocumented
    if doc.startswith(f"{getattr(obj, '__name__', '')}("):
        return ""
    for line in doc.strip().splitlines():
        if line.strip():
            return line.strip()
    return ""


def as_structured_type(value: Any) -> StructuredType | None:
    """The StructuredType behind a class, an instance, or itself."""
    if isinstance(value, StructuredType):
        return value
    found = getattr(value, "__structured__", None)
    return found if isinstance(found, StructuredType) else None


# ---------------------------------------------------------------------------
# StructuredType
# ---------------------------------------------------------------------------


class StructuredType:
    """A class plus its compiled schema, validator and hydrator."""

    def __init__(
        self,
        fragment: SchemaFragment,
        factory: Callable[..., Any],
        *,
        registry: SchemaRegistry | None = None,
    ):
        if not callable(factory):
            raise SchemaConfigurationError(f"Structured type factory is not callable: {factory!r}")
        self.factory = factory
        self.registry = registry if registry is not None else default_registry
        self.fragment = fragment.with_defaults(
            name=getattr(factory, "__name__", "Structured"),
            description=_doc_summary(factory),
        )
        self.name: str = self.fragment.name

        self.constructor_params: list[ConstructorParameter] | None
        if self.fragment.constructor_args is not None:
            self.constructor_params = parameters_from_declaration(self.fragment.constructor_args)
        else:
            self.constructor_params = constructor_parameters(factory)

        self._schema: dict[str, Any] | None = None
        self._validator: SchemaValidator | None = None
        self._dependencies: dict[str, StructuredType] = {}
        self._compiling = False
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<StructuredType {self.name} ({self.factory.__qualname__})>"

    @property
    def has_schema(self) -> bool:
        return self.fragment.properties is not None

    # -- schema --------------------------------------------------------------

    def get_schema(self) -> dict[str, Any] | None:
        """Compiled schema, built on first call and cached afterwards.

        Returns None for a type declared without properties. Asking for
        the schema while it is being compiled (a circular reference)
        yields ``reference_stub()``. In a cycle the stub lands in whichever
        type is reached second: with A <-> B, compiling A first inlines the
        full B into A and a stub of A into B, so B's document depends on
        which type was asked for first.
        """
        if not self.has_schema:
            return None
        if self._schema is not None:
            return self._schema
        with self._lock:
            if self._schema is not None:
                return self._schema
            if self._compiling:
                return self.reference_stub()
            self._compiling = True
            try:
                compiler = SchemaCompiler(
                    self._resolve_reference,
                    self._find_item_type if config.INFER_ARRAY_ITEMS else None,
                )
                schema = compiler.compile_fragment(self.fragment)
            finally:
                self._compiling = False
            self._schema = schema
            log.debug("Compiled schema for %s", self.name, extra={"structured_type": self.name})
        return self._schema

    def reference_stub(self) -> dict[str, Any]:
        return {
            "type": "object",
            "name": self.name,
            "description": self.fragment.description or "",
        }

    def _resolve_reference(self, value: Any) -> dict[str, Any] | None:
        if isinstance(value, Ref):
            target = self.registry.get(value.name)
        else:
            target = as_structured_type(value)
        if target is None:
            return None
        self._dependencies[target.name] = target
        return target.get_schema()

    def _find_item_type(self, property_name: str) -> dict[str, Any] | None:
        target = self.registry.find_singular(property_name)
        if target is None:
            return None
        self._dependencies[target.name] = target
        return target.get_schema()

    def resolve(self, name: str) -> StructuredType | None:
        """Nested type lookup used during hydration."""
        return self._dependencies.get(name) or self.registry.resolve(name)

    # -- validation ----------------------------------------------------------

    def validator(self) -> SchemaValidator:
        if self._validator is None:
            with self._lock:
                if self._validator is None:
                    self._validator = compile_validator(self.get_schema())
        return self._validator

    def validate(self, candidate: Any, *, repair: bool = False) -> ValidationOutcome:
        outcome = validate_candidate(
            candidate, self.get_schema(), repair=repair, validator=self.validator()
        )
        if not outcome.valid:
            log.info(
                "Reply does not match %s: %d violation(s)", self.name, len(outcome.errors),
                extra={"structured_type": self.name},
            )
        return outcome

    # -- hydration -----------------------------------------------------------

    def hydrate(self, recipe: Any, *, strict: bool | None = None) -> Any:
        """Instance of the factory built from *recipe*, or None on failure."""
        return hydrate_recipe(
            recipe,
            self.get_schema(),
            self.resolve,
            factory=self.factory,
            constructor_params=self.constructor_params,
            type_name=self.name,
            strict=config.STRICT_HYDRATION if strict is None else strict,
        )


# ---------------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------------


def _class_get_schema(cls):
    return cls.__structured__.get_schema()


def _class_validate(cls, candidate, *, repair=False):
    return cls.__structured__.validate(candidate, repair=repair)


def _class_hydrate(cls, recipe, *, strict=None):
    return cls.__structured__.hydrate(recipe, strict=strict)


_CLASS_HELPERS = (
    ("get_schema", _class_get_schema),
    ("validate", _class_validate),
    ("hydrate", _class_hydrate),
)


def _coerce_fragment(fragment: SchemaFragment | Mapping[str, Any] | None, fields: Mapping[str, Any]) -> SchemaFragment:
    if fragment is None:
        data: dict[str, Any] = {}
    elif isinstance(fragment, SchemaFragment):
        if not fields:
            return fragment
        data = {
            "type": fragment.type,
            "name": fragment.name,
            "description": fragment.description,
            "properties": fragment.properties,
            "required": fragment.required,
            "additional_properties": fragment.additional_properties,
            "strict": fragment.strict,
            "allow_no_schema": fragment.allow_no_schema,
            "constructor_args": fragment.constructor_args,
            **fragment.extra,
        }
        data = {k: v for k, v in data.items() if v is not None}
    elif isinstance(fragment, Mapping):
        data = dict(fragment)
    else:
        raise SchemaConfigurationError(f"Unsupported schema fragment: {fragment!r}")
    data.update(fields)
    return SchemaFragment.from_dict(data)


def attach(
    fragment: SchemaFragment | Mapping[str, Any] | None,
    cls: type,
    *,
    registry: SchemaRegistry | None = None,
    register: bool = True,
    wrapper: type[StructuredType] = StructuredType,
) -> StructuredType:
    """Mark *cls* as a structured type and (by default) register it.

    The schema itself is compiled lazily, on the first ``get_schema()``.
    """
    structured = wrapper(_coerce_fragment(fragment, {}), cls, registry=registry)
    cls.__structured__ = structured
    for name, helper in _CLASS_HELPERS:
        if not hasattr(cls, name):
            setattr(cls, name, classmethod(helper))
    if register:
        structured.registry.register(structured)
    if not structured.has_schema:
        log.debug("%s declared without properties; it has no schema", structured.name)
    return structured


def structured(
    fragment: SchemaFragment | Mapping[str, Any] | None = None,
    /,
    *,
    registry: SchemaRegistry | None = None,
    register: bool = True,
    **fields: Any,
) -> Callable[[type], type]:
    """Class decorator form of ``attach``.

    Fragment keys may be given as a mapping/``SchemaFragment``, as keyword
    arguments, or both (keywords win).
    """
    merged = _coerce_fragment(fragment, fields)

    def decorate(cls: type) -> type:
        attach(merged, cls, registry=registry, register=register)
        return cls

    return decorate
