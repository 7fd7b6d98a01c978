"""
Nested parsable declarations.

A Group declares "include another parsable definition here". It contributes
the nested definition's arguments at its own position and decodes through the
decode-once protocol, so a nested type shared by several groups of the same
parse is decoded and validated a single time.

    >>> from armada import Parsable, Group, Option, Flag
    >>> class Global(Parsable):
    ...     verbose = Flag("-v", "--verbose")
    >>> class Options(Parsable):
    ...     name = Option("--name")
    ...     globals = Group(Global)
"""
import builtins

from rich.text import Text

from .argset import build
from .decoding import decode
from .parsable import Parsable
from .utils import *


class Group:
    """
    Declaration handle of a nested parsable definition.

    Parameters
    - type: a Parsable subclass, or a zero-argument callable returning one
      (lets a definition refer to types declared later, itself included; the
      builder reports such cycles as RecursiveDefinitionError).
    - descr: Unset | str, short description of the group.
    - hidden: bool.
    descr and hidden are metadata for host tooling such as help renderers;
    building and decoding never read them.
    """
    __typename__ = "group"

    def __init__(self, type, /, *, descr=Unset, hidden=False):
        if not builtins.callable(type):
            raise TypeError("group 'type' must be a parsable definition or a callable returning one")
        if not isinstance(descr, str | Text | Unset):
            raise TypeError("group 'descr' must be a string")
        elif isinstance(descr, str) and not (descr := descr.strip()):
            raise ValueError("group 'descr' cannot be empty")
        self._type = type
        self._descr = coalesce(descr)
        self._hidden = bool(hidden)

    @property
    def type(self):
        definition = self._type
        if not (isinstance(definition, builtins.type) and issubclass(definition, Parsable)):
            definition = definition()
        if not (isinstance(definition, builtins.type) and issubclass(definition, Parsable)):
            raise TypeError("group 'type' must resolve to a parsable definition")
        return definition

    descr = mirror("descr")
    hidden = mirror("hidden")

    def __arguments__(self, owner, path, ancestry=()):
        return build(self.type, path, ancestry)

    def __decode__(self, context, path):
        return decode(self.type, context, path)

    def __repr__(self):
        definition = self._type
        return "group(type=%s, descr=%r, hidden=%r)" % (
            getattr(definition, "__qualname__", repr(definition)), self._descr, self._hidden
        )

    def __rich_repr__(self):
        yield "type", getattr(self._type, "__qualname__", self._type)
        yield "descr", self._descr
        yield "hidden", self._hidden


__all__ = (
    "Group",
)
