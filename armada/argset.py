"""
Argument set builder.

An ArgumentSet is the ordered collection of argument specifications a
parsable definition declares, nested groups included. Entries are spliced in
at the position of the group that contributes them, so the overall order is
the declaration order read depth-first; help/usage text and matching
precedence both rely on it.

Building is pure: it reads class-level declarations only, never tokens, and
two builds of the same definition are structurally equal. It is therefore
safe to build once for matching and again (per property, through the
Definition recipes) later on.
"""
from collections import namedtuple
from collections.abc import Mapping, Sequence

from .faults import RecursiveDefinitionError


class ArgumentDefinition(namedtuple("ArgumentDefinition", ("path", "spec", "owner"))):
    """
    one entry of an argument set.

    - path: tuple of property names from the root definition to the property.
    - spec: the Cardinal/Option/Flag declared for that property.
    - owner: the parsable definition that declares the property.
    """
    __slots__ = ()

    @property
    def key(self):
        return self.path[-1]

    @property
    def kind(self):
        return type(self.spec).__typename__

    @property
    def names(self):
        return getattr(self.spec, "names", ())

    @property
    def nargs(self):
        return getattr(self.spec, "nargs", 0)

    @property
    def signature(self):
        """
        structural identity: what must match for two entries to be equal in
        the sense of idempotent builds (names, order, arity, kind).
        """
        return self.path, self.kind, self.names, self.nargs


class ArgumentSet(Sequence):
    """
    immutable, ordered sequence of ArgumentDefinition entries.

    - `a + b` concatenates, keeping a's entries first.
    - equality is structural (entry signatures, in order).
    - distinct() is the matchable view: when the same nested definition is
      contributed more than once (two groups of the same type), only its first
      contribution is kept. the later ones are decoded from the decode cache
      and never match tokens of their own.
    """
    __slots__ = ("_entries",)

    def __init__(self, entries=(), /):
        entries = tuple(entries)
        for entry in entries:
            if not isinstance(entry, ArgumentDefinition):
                raise TypeError("argument set entries must be argument definitions")
        object.__setattr__(self, "_entries", entries)

    def __setattr__(self, name, value, /):
        raise AttributeError("argument sets are read-only")

    def __getitem__(self, index, /):
        if isinstance(index, slice):
            return ArgumentSet(self._entries[index])
        return self._entries[index]

    def __len__(self):
        return len(self._entries)

    def __add__(self, other, /):
        if not isinstance(other, ArgumentSet):
            return NotImplemented
        return ArgumentSet(self._entries + other._entries)

    def __eq__(self, other, /):
        if not isinstance(other, ArgumentSet):
            return NotImplemented
        return [entry.signature for entry in self] == [entry.signature for entry in other]

    __hash__ = None

    @property
    def names(self):
        """
        every switch name, in declaration order (primary names first per entry).
        """
        return tuple(name for entry in self._entries for name in entry.names)

    @property
    def cardinals(self):
        return ArgumentSet(entry for entry in self._entries if entry.kind == "cardinal")

    @property
    def switches(self):
        return ArgumentSet(entry for entry in self._entries if entry.kind != "cardinal")

    def distinct(self):
        seen = {}
        entries = []
        for entry in self._entries:
            prefix = entry.path[:-1]
            # the first prefix under which an (owner, key) pair shows up wins
            if seen.setdefault((entry.owner, entry.key), prefix) == prefix:
                entries.append(entry)
        return ArgumentSet(entries)

    def __repr__(self):
        return "ArgumentSet(%s)" % ", ".join(
            "%s:%s" % (".".join(entry.path), entry.kind) for entry in self._entries
        )

    def __rich_repr__(self):
        for entry in self._entries:
            yield ".".join(entry.path), entry.spec


def contribute(definition, name, /, path=(), ancestry=()):
    """
    the ArgumentSet contributed by one declared property of `definition`.

    this is the recipe stored in a property's Definition cell (bound through
    functools.partial); `path` is the prefix of the enclosing property, if any.
    """
    try:
        declaration = definition.__declarations__[name]
    except KeyError:
        raise AttributeError(f"{definition.__qualname__!r} declares no property {name!r}") from None
    return declaration.__arguments__(definition, (*path, name), ancestry)


def build(definition, /, path=(), ancestry=()):
    """
    derive the full ArgumentSet of a parsable definition.

    parameters
    - definition: a Parsable subclass.
    - path: prefix prepended to every entry path (the enclosing group's path).
    - ancestry: definitions currently being built above this one.

    raises
    - TypeError when `definition` declares nothing (not a parsable type).
    - RecursiveDefinitionError when `definition` already is in its ancestry.
    """
    if not isinstance(getattr(definition, "__declarations__", None), Mapping):
        raise TypeError("build() argument must be a parsable definition")
    if definition in ancestry:
        raise RecursiveDefinitionError((*ancestry, definition))

    ancestry = (*ancestry, definition)
    return sum(
        (contribute(definition, name, path, ancestry) for name in definition.__declarations__),
        ArgumentSet(),
    )


__all__ = (
    "ArgumentDefinition",
    "ArgumentSet",
    "contribute",
    "build",
)
