"""
Group decoder: decode-once protocol for nested parsable definitions.

One DecodeContext lives exactly as long as one top-level parse. It carries

- the matched values produced by the parser (path -> Value), opaque to the
  declarations except through lookup(path);
- a DecodeCache mapping each nested definition (keyed by the type object) to
  the instance already decoded for this parse.

decode(definition, context, path) is what a Group (and the parser, for the
root definition) calls:

1. context.previous(definition) hit → adopt the cached instance with an empty
   provenance; no structural decode, no validation (it already ran).
2. miss → context.decode(definition, path) walks the declarations and
   assembles a fresh instance.
3. the fresh instance's validate() runs exactly once; a failure raises
   UserValidationError and aborts the parse. only validated instances are
   saved, so anything adopted later has been validated.

Cached instances are shared by identity between every property of the same
type within a parse, so they are expected to stay unmodified once decoded.
"""
import functools
import logging
import operator
from collections.abc import Mapping
from types import MappingProxyType

from .faults import FaultCode, UserValidationError, getdoc
from .parsed import ArgumentSource, Value
from .utils import Unset

logger = logging.getLogger(__name__)


class DecodeCache:
    """
    per-parse mapping from a nested definition to its decoded instance.

    keys are type objects (identity), so two declarations of the same type
    always share one instance. a cache must never outlive its parse.
    """
    __slots__ = ("_instances",)

    def __init__(self):
        self._instances = {}

    def get(self, definition, default=Unset, /):
        return self._instances.get(definition, default)

    def save(self, definition, instance, /):
        if not isinstance(instance, definition):
            raise TypeError(
                f"decode cache entry for {definition.__qualname__!r} must be an instance of it"
            )
        self._instances[definition] = instance

    def __contains__(self, definition, /):
        return definition in self._instances

    def __len__(self):
        return len(self._instances)

    def __iter__(self):
        return iter(self._instances)

    def __repr__(self):
        return "DecodeCache(%s)" % ", ".join(definition.__qualname__ for definition in self._instances)


class DecodeContext:
    """
    shared state of one decode pass.

    interface used by the declarations
    - previous(definition) -> instance | Unset
    - save(definition, instance)
    - lookup(path) -> Value | Unset
    - decode(definition, path) -> fresh instance (structural walk)

    a test double may subclass it and count calls to decode() or save() to
    observe how often a nested definition is actually decoded.
    """

    def __init__(self, values=(), /):
        if isinstance(values, Mapping):
            values = values.items()
        matched = {}
        for path, parsed in values:
            if not isinstance(parsed, Value):
                raise TypeError("decode context values must be parsed values")
            matched[tuple(path)] = parsed
        self._values = matched
        self._cache = DecodeCache()

    @property
    def values(self):
        return MappingProxyType(self._values)

    @property
    def cache(self):
        return self._cache

    def previous(self, definition, /):
        return self._cache.get(definition)

    def save(self, definition, instance, /):
        self._cache.save(definition, instance)

    def lookup(self, path, /):
        return self._values.get(tuple(path), Unset)

    def decode(self, definition, path=(), /):
        """
        structural decode: resolve every declared property of `definition`
        (nested groups go through the decode-once protocol on their own) and
        assemble a new instance from the resulting cells.
        """
        cells = {}
        for name, declaration in definition.__declarations__.items():
            cells[name] = declaration.__decode__(self, (*path, name))
        return definition.__assemble__(cells)


def decode(definition, context, /, path=()):
    """
    decode `definition` at `path` at most once per context and validate it
    exactly once; returns the resolved Value cell.

    raises
    - UserValidationError when the instance's validate() raises; the original
      exception is available as `underlying` and chained as __cause__.
    """
    path = tuple(path)

    if (instance := context.previous(definition)) is not Unset:
        logger.debug("adopting decoded %s for %r", definition.__qualname__, path)
        return Value(instance, ArgumentSource())

    logger.debug("decoding %s at %r", definition.__qualname__, path)
    instance = context.decode(definition, path)

    try:
        instance.validate()
    except Exception as exception:
        where = "property %r" % ".".join(path) if path else "command"
        raise UserValidationError(
            "validation of %s for %s failed: %s" % (definition.__qualname__, where, exception),
            title="validation error",
            code=FaultCode.USER_VALIDATION,
            path=path,
            value=instance,
            hint="check the values given for %s" % where,
            docs=getdoc(FaultCode.USER_VALIDATION),
            exception=exception,
        ) from exception

    context.save(definition, instance)

    source = functools.reduce(
        operator.or_,
        (cell.source for cell in instance.__cells__.values()),
        ArgumentSource(),
    )
    return Value(instance, source)


__all__ = (
    "DecodeCache",
    "DecodeContext",
    "decode",
)
