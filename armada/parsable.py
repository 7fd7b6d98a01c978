"""
Armada parsable definitions.

Overview
- Parsable: base type of every command-line definition. Fields are declared
  in the class body as handles (Cardinal, Option, Flag, Group); instances hold
  one Parsed-Property cell per field.
- ParsableType: metaclass that registers the handles in declaration order
  (`__declarations__`, base-class fields first) and replaces each of them with
  a data descriptor over the instance's cell.

Lifecycle of a field
- Parsable(**presets): preset fields start resolved, as Value(preset) with an
  empty provenance; the others start as Definition(recipe), the recipe being
  the field's argument set contribution.
- the parser assembles instances directly from decoded cells (no __init__).
- reading a field returns the cell's value; reading one that is still a
  definition raises RuntimeError (a usage bug, never a user fault).
- assigning a field replaces its cell with a Value, keeping the previous
  provenance if there was one.

Quick example:
    >>> from armada import Parsable, Option, Flag, Group
    >>> class Global(Parsable):
    ...     verbose = Flag("-v", "--verbose")
    >>> class Options(Parsable):
    ...     name = Option("--name")
    ...     globals = Group(Global)
    >>> Options.parse(["--name", "x", "--verbose"])
    Options(name='x', globals=Global(verbose=True))
"""
import functools
import re
from types import MappingProxyType

from .argset import contribute
from .parsed import ArgumentSource, Definition, Parsed, Value
from .utils import *

_reserved = frozenset(("parse", "validate"))


def _declarable(object):
    return (
        not isinstance(object, type) and
        callable(getattr(object, "__arguments__", None)) and
        callable(getattr(object, "__decode__", None))
    )


class Property:
    """
    data descriptor standing for one declared field.

    class access returns the declaration handle, instance access the value of
    the instance's cell for that field.
    """
    __slots__ = ("_name", "_handle")

    def __init__(self, name, handle, /):
        self._name = name
        self._handle = handle

    @property
    def name(self):
        return self._name

    @property
    def handle(self):
        return self._handle

    def __set_name__(self, owner, name):
        if name != self._name:
            raise TypeError(f"property {self._name!r} cannot be bound as {name!r}")

    def __get__(self, instance, owner=None):
        if instance is None:
            return self._handle
        return instance.__cells__[self._name].value

    def __set__(self, instance, value):
        cells = instance.__cells__
        cells[self._name] = cells[self._name].update(value)

    def __delete__(self, instance):
        raise AttributeError(f"property {self._name!r} cannot be deleted")

    def __repr__(self):
        return "property(%s=%r)" % (self._name, self._handle)


class ParsableType(type):
    """
    Metaclass collecting the declaration handles of a parsable definition.

    Conventions
    - a handle is any non-type object with callable __arguments__ and
      __decode__ hooks.
    - handles may not be named after private names (leading "_") or after the
      Parsable API (parse, validate).
    - a subclass redeclaring a base field replaces the handle but keeps the
      base declaration position.
    """

    def __new__(cls, name, bases, namespace, **options):
        declarations = {}
        for base in reversed(bases):
            declarations.update(getattr(base, "__declarations__", {}))

        handles = {key: value for key, value in namespace.items() if _declarable(value)}
        for key in handles:
            if key.startswith("_"):
                raise TypeError(f"{name} cannot declare private property {key!r}")
            if key in _reserved:
                raise TypeError(f"{name} cannot declare property {key!r} (reserved by parsable definitions)")
        declarations.update(handles)

        return super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
                "__declarations__": MappingProxyType(declarations),
            } | {
                key: Property(key, handle) for key, handle in handles.items()
            },
            **options,
        )


class Parsable(metaclass=ParsableType):
    """
    Base of command-line definitions.

    Hooks
    - validate(self): checks the decoded instance as a whole; any exception it
      raises aborts the parse as a UserValidationError. runs exactly once per
      decoded instance, before the instance is exposed to anyone.

    Constructing an instance directly never touches the argument set builder
    for preset fields; fields left out stay definitions until assigned.
    """

    def __init__(self, /, **presets):
        cls = type(self)
        if unknown := [name for name in presets if name not in cls.__declarations__]:
            raise TypeError("%s() got unexpected preset%s %s" % (
                cls.__qualname__, "s" * (len(unknown) > 1), ", ".join(map(repr, unknown))
            ))
        self.__cells__ = {
            name: Value(presets[name], ArgumentSource())
            if name in presets else
            Definition(functools.partial(contribute, cls, name))
            for name in cls.__declarations__
        }

    @classmethod
    def __assemble__(cls, cells, /):
        """
        Build an instance straight from parsed cells (decoding path).
        """
        if list(cells) != list(cls.__declarations__):
            raise TypeError(f"{cls.__qualname__} cells must match its declarations")
        if not all(isinstance(cell, Parsed) for cell in cells.values()):
            raise TypeError(f"{cls.__qualname__} cells must be parsed cells")
        self = object.__new__(cls)
        self.__cells__ = dict(cells)
        return self

    def validate(self):
        pass

    @classmethod
    def parse(cls, prompt=Unset, /, **options):
        from .parser import Parser

        return Parser(cls, **options).parse(prompt)

    def _snapshot(self):
        return tuple(
            (name, cell.value if cell.resolved else Definition)
            for name, cell in self.__cells__.items()
        )

    def __eq__(self, other, /):
        if type(other) is not type(self):
            return NotImplemented
        return self._snapshot() == other._snapshot()

    __hash__ = None

    def __repr__(self):
        return "%s(%s)" % (type(self).__qualname__, ", ".join(
            "%s=%s" % (name, repr(cell.value) if cell.resolved else "*definition*")
            for name, cell in self.__cells__.items()
        ))

    def __rich_repr__(self):
        for name, cell in self.__cells__.items():
            yield name, cell.value if cell.resolved else cell


def cell(instance, name, /):
    """
    Return the Parsed-Property cell of a declared field (Definition or Value).
    """
    if not isinstance(instance, Parsable):
        raise TypeError("cell() first argument must be a parsable instance")
    try:
        return instance.__cells__[name]
    except KeyError:
        raise AttributeError(f"{type(instance).__qualname__!r} declares no property {name!r}") from None


def source(instance, name, /):
    """
    Return the ArgumentSource of a resolved field (Unset while unresolved).
    """
    return cell(instance, name).source


__all__ = (
    "Parsable",
    "cell",
    "source",
)

# Remove the internal metaclass from the module namespace (not part of the public API).
del ParsableType
