"""
Parsed-property state: the per-declaration cell of a parsable instance.

A cell is, at any moment, one of two variants:

- Definition(recipe)
  the initial, unresolved state. `recipe()` is pure and returns the
  ArgumentSet the declaration contributes; it can be called any number of
  times without changing meaning.
- Value(value, source)
  the resolved state. `source` is an ArgumentSource recording which raw
  tokens produced `value` (empty for defaults, presets and values adopted
  from the decode cache).

Transitions are one-way: a Definition becomes a Value when the decoding
engine resolves it (or when a value is assigned directly); no operation ever
turns a Value back into a Definition.

Reading `.value` on a Definition is a usage bug of the surrounding code, not a
user-input problem, so it raises RuntimeError rather than a command fault.
"""
from collections import namedtuple

from rich.text import Text

from .utils import Unset


Origin = namedtuple("Origin", ("index", "token"))
Origin.__doc__ = """
one raw token that contributed to a parsed value.

- index: 0-based position of the token in the parsed token list.
- token: the raw token text as received (e.g. '--name', 'x', '--name=x').
"""


class ArgumentSource:
    """
    provenance of a parsed value: the ordered, de-duplicated raw tokens that
    produced it.

    sources are immutable; `|` merges two of them (used to compose the
    provenance of a nested group out of its fields). an empty source is falsy.
    """
    __slots__ = ("_origins",)

    def __init__(self, origins=(), /):
        origins = tuple(Origin(*origin) for origin in origins)
        object.__setattr__(self, "_origins", tuple(sorted(set(origins), key=lambda origin: origin.index)))

    def __setattr__(self, name, value, /):
        raise AttributeError("argument sources are read-only")

    @property
    def origins(self):
        return self._origins

    @property
    def indices(self):
        return tuple(origin.index for origin in self._origins)

    @property
    def tokens(self):
        return tuple(origin.token for origin in self._origins)

    def __or__(self, other, /):
        if not isinstance(other, ArgumentSource):
            return NotImplemented
        return ArgumentSource(self._origins + other._origins)

    def __iter__(self):
        return iter(self._origins)

    def __len__(self):
        return len(self._origins)

    def __bool__(self):
        return bool(self._origins)

    def __eq__(self, other, /):
        if not isinstance(other, ArgumentSource):
            return NotImplemented
        return self._origins == other._origins

    def __hash__(self):
        return hash(self._origins)

    def __repr__(self):
        return "ArgumentSource(%r)" % (self.tokens,)

    def __rich_repr__(self):
        yield from self.tokens


_directly_initialized = (
    "cannot read a parsed property that is still a definition: it was never "
    "decoded nor assigned. read properties of instances returned by the parser, "
    "or construct the instance with every property preset."
)


class Parsed:
    """
    base of the two cell variants (Definition and Value).

    interface
    - value: the resolved value (RuntimeError while still a definition).
    - source: the ArgumentSource of a value, Unset for a definition.
    - resolved: True for values.
    - update(value): the cell that results from assigning `value` directly.
    """
    __slots__ = ()

    resolved = False

    @property
    def value(self):
        raise RuntimeError(_directly_initialized)

    @property
    def source(self):
        return Unset

    def update(self, value, /):
        """
        Replace the cell content with an assigned value.

        The previous provenance is carried over when there is one; an assigned
        value never claims command-line tokens it did not come from otherwise.
        """
        source = self.source
        return Value(value, source if source is not Unset else ArgumentSource())

    def __init_subclass__(cls, **options):
        if cls.__name__ not in ("Definition", "Value") or cls.__module__ != __name__:
            raise TypeError("type 'Parsed' is not an acceptable base type")
        super().__init_subclass__(**options)


class Definition(Parsed):
    """
    unresolved cell: a recipe producing the declaration's ArgumentSet.
    """
    __slots__ = ("_recipe",)
    __match_args__ = ("recipe",)

    def __init__(self, recipe, /):
        if not callable(recipe):
            raise TypeError("definition recipe must be callable")
        object.__setattr__(self, "_recipe", recipe)

    def __setattr__(self, name, value, /):
        raise AttributeError("parsed cells are read-only")

    @property
    def recipe(self):
        return self._recipe

    def __call__(self):
        return self._recipe()

    def __repr__(self):
        return "Definition(*definition*)"

    def __rich__(self):
        return Text("*definition*", style="dim")


class Value(Parsed):
    """
    resolved cell: a concrete value plus its provenance.
    """
    __slots__ = ("_value", "_source")
    __match_args__ = ("value", "source")

    resolved = True

    def __init__(self, value, source=Unset, /):
        if source is Unset:
            source = ArgumentSource()
        if not isinstance(source, ArgumentSource):
            raise TypeError("value source must be an argument source")
        object.__setattr__(self, "_value", value)
        object.__setattr__(self, "_source", source)

    def __setattr__(self, name, value, /):
        raise AttributeError("parsed cells are read-only")

    @property
    def value(self):
        return self._value

    @property
    def source(self):
        return self._source

    def __eq__(self, other, /):
        if not isinstance(other, Value):
            return NotImplemented
        return self._value == other._value and self._source == other._source

    __hash__ = None

    def __repr__(self):
        return "Value(%r, %r)" % (self._value, self._source)

    def __rich_repr__(self):
        yield self._value
        yield "source", self._source


__all__ = (
    "Origin",
    "ArgumentSource",
    "Parsed",
    "Definition",
    "Value",
)
