r"""
Armada argument specifications.

Overview
- Specs
  • Cardinal: positional, value-bearing argument (supports fixed/optional/variadic and greedy arity).
  • Option: named, value-bearing option with one or more aliases (e.g., -o/--output).
  • Flag: named, presence-only switch (no payload), e.g., -v/--verbose.

- Declaration hooks
  Every spec is a declaration handle usable in a Parsable class body:
  • __arguments__(owner, path, ancestry=()) contributes a one-entry ArgumentSet.
  • __decode__(context, path) resolves the matched value (or the default) into a
    parsed Value cell.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__.

Metadata (sanitized on construction)
- Shared (all specs)
  • descr: Unset | str | Text, non-empty when provided.
  • hidden: bool.
    descr and hidden are carried for host tooling (help or usage renderers);
    matching and decoding never read them.
  • deprecated: bool, using the argument emits a DeprecatedArgumentWarning.
- Cardinal/Option only (value-bearing)
  • metavar: Unset | str (label; forbidden for greedy "...").
  • type: Callable (converter/validator).
  • nargs: Unset | "?" | "+" | "*" | int (>=1) | Ellipsis (greedy, Cardinal only).
  • default: any value, used when no token matched.
  • choices: Iterable (duplicates rejected unless a Set).
- Named (Option/Flag)
  • names: shell-style identifiers; duplicates rejected; declaration order kept
    (the first name is the primary one).

Validation highlights
- Names must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique within a spec.
- Cardinal must not specify a metavar when nargs is Ellipsis ("...").
- Specs cannot combine metavar and choices simultaneously.

Quick example:
    >>> from armada import Parsable, Cardinal, Option, Flag
    >>> class Tool(Parsable):
    ...     path = Cardinal("PATH")
    ...     threads = Option("-t", "--threads", type=int, default=1)
    ...     verbose = Flag("-v", "--verbose")
"""
import re
from collections.abc import Iterable, Set
from types import EllipsisType

from rich.text import Text

from .argset import ArgumentDefinition, ArgumentSet
from .parsed import ArgumentSource, Value
from .utils import *


class ArgumentType(type):
    """
    Metaclass that turns specs into introspectable declaration handles.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages and as the argument kind.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options,
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - option(names=('-v', '--verbose'), metavar=None, ...)
            """
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join("%s=%r" % pair for pair in self.__rich_repr__()),
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the metadata shared by every spec.

    - descr: optional short description. If omitted (Unset), it becomes None.
      If provided, it must be a non-empty string after trimming (Text is kept).

    Raises
    - TypeError: if 'descr' is not a string, Text or Unset.
    - ValueError: if 'descr' is a string but empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")

    metadata["descr"] = coalesce(descr)


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate and normalize the names of option-like specs.

    Each name must be a non-empty string matching r"--?[^\W\d_](-?[^\W_]+)*":
    short ("-x"), single-hyphen long ("-long-name") or double-hyphen long
    ("--long-name"). Unicode letters are allowed; underscores and leading digits
    are not. Duplicates are rejected and declaration order is kept, so the
    first name stays the primary one used in messages.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for value-bearing arguments.

    Scope
    - Cardinal and Option only; Flag carries no payload.

    Responsibilities
    - metavar: Unset or a non-empty string after trimming.
    - type: must be callable (converter/validator).
    - nargs: Unset | "?" | "+" | "*" | int (>= 1) and, for Cardinal, Ellipsis.
    - choices: must be iterable. If not a Set, duplicates are rejected and
      the collection is normalized to a tuple.

    Not responsible for
    - default: any value (including None) is accepted as-is.
    """
    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = coalesce(metavar)

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    # Cardinal supports greedy arity (Ellipsis), Option does not.
    cardinal = issubclass(cls, Cardinal)

    if isinstance(nargs := metadata["nargs"], bool) or not isinstance(
            nargs, str | int | Unset | (EllipsisType if cardinal else Unset)
    ):
        if not cardinal:
            raise TypeError(f"{cls.__typename__} 'nargs' must be a string or an integer")
        raise TypeError(f"{cls.__typename__} 'nargs' must be a string, an integer, or ellipsis")
    if isinstance(nargs, str) and nargs not in ("?", "+", "*"):
        raise ValueError(f"{cls.__typename__} 'nargs' must be one of '?', '+', or '*'")
    if isinstance(nargs, int) and nargs < 1:
        raise ValueError(f"{cls.__typename__} 'nargs' must be a positive integer")
    metadata["nargs"] = coalesce(nargs)

    if not isinstance(choices := metadata["choices"], Iterable) or isinstance(choices, str):
        raise TypeError(f"{cls.__typename__} 'choices' must be iterable")
    if not isinstance(choices, Set):
        sanitized = []
        for choice in choices:
            if choice in sanitized:
                raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
            sanitized.append(choice)
        choices = tuple(sanitized)
    metadata["choices"] = choices


class Argument(metaclass=ArgumentType):
    """
    Common declaration hooks of the argument specs.

    A spec contributes exactly one entry to the argument set of the type that
    declares it, and decodes to whatever the parser matched at its path, or
    to its default (with an empty provenance) when nothing matched.
    """

    def __arguments__(self, owner, path, ancestry=()):
        return ArgumentSet((ArgumentDefinition(tuple(path), self, owner),))

    def __decode__(self, context, path):
        parsed = context.lookup(tuple(path))
        if parsed is Unset:
            return Value(self.__fallback__(), ArgumentSource())
        return parsed

    def __fallback__(self):
        return self.default


class Cardinal[_T](Argument):
    """
    Positional, value-bearing argument specification.

    Highlights
    - Converter provided via 'type'.
    - Arity: exactly one (default), fixed (int >= 1), optional single ("?"),
      one-or-more ("+"), zero-or-more ("*"), and greedy (Ellipsis, swallows
      every remaining token including switch-like ones).
    - Positionals are matched in declaration order across the whole argument
      set, nested groups included.
    """

    __introspectable__ = (
        "metavar",
        "type",
        "nargs",
        "default",
        "choices",
        "descr",
        "hidden",
        "deprecated",
    )

    def __new__(
            cls,
            metavar=Unset,
            /,
            type=str,
            nargs=Unset,
            default=None,
            choices=(),
            descr=Unset,
            *,
            hidden=False,
            deprecated=False
    ):
        """
        Construct a Cardinal spec with the provided metadata.

        Parameters
        - metavar: Unset | str
          Display name for the value. Must be non-empty if provided.
          For greedy arity (Ellipsis), an explicit metavar is forbidden.
        - type: Callable
          Converter applied to each matched token.
        - nargs: Unset | "?" | "+" | "*" | int | Ellipsis
          Arity of the argument. Integers must be >= 1.
        - default: Any
          Value decoded when no token matched this cardinal.
        - choices: Iterable
          Allowed values. If not a Set, duplicates are rejected.
        - descr: Unset | str
          Short description. If Unset, becomes None.
        - hidden / deprecated: bool
        """
        metadata = {
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "choices": choices,
            "descr": descr,
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        if self.nargs is Ellipsis:
            # greedy arity is rendered as "..." and cannot carry another label
            if self.metavar:
                raise TypeError(f"greedy {cls.__typename__} cannot specify a 'metavar'")
            self._metavar = "..."

        if self.metavar and self.metavar != "..." and self.choices:
            raise TypeError(f"{cls.__typename__} cannot have both 'metavar' and 'choices'")

        return self


class Option[_T](Argument):
    """
    Named, value-bearing option specification.

    Highlights
    - Supports aliases via 'names' (e.g., "-o", "--output", "-output").
    - Arity: exactly one (default), fixed (int >= 1), optional single ("?"),
      one-or-more ("+"), zero-or-more ("*").
    - Inline form: when inline is True, enforces --name=value style (no space).
    """

    __introspectable__ = (
        "names",
        "metavar",
        "type",
        "nargs",
        "default",
        "choices",
        "descr",
        "inline",
        "hidden",
        "deprecated",
    )

    def __new__(
            cls,
            *names,
            metavar=Unset,
            type=str,
            nargs=Unset,
            default=None,
            choices=(),
            descr=Unset,
            inline=False,
            hidden=False,
            deprecated=False
    ):
        """
        Construct an Option spec with the provided metadata.

        Parameters
        - names: one or more str
          Aliases for the option; the first one is the primary name.
        - metavar / type / nargs / default / choices / descr:
          Same meaning as for Cardinal (no greedy arity).
        - inline: bool
          If True, the option must be specified inline as --name=value.
        - hidden / deprecated: bool
        """
        metadata = {
            "names": names,
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "choices": choices,
            "descr": descr,
            "inline": bool(inline),
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        if self.metavar and self.choices:
            raise TypeError(f"{cls.__typename__} cannot have both 'metavar' and 'choices'")

        return self


class Flag(Argument):
    """
    Named, presence-only option specification.

    A flag decodes to True when any of its names was given and to False
    otherwise. Any '=value' tail is a user error.
    """

    __introspectable__ = (
        "names",
        "descr",
        "hidden",
        "deprecated",
    )

    def __new__(
            cls,
            *names,
            descr=Unset,
            hidden=False,
            deprecated=False
    ):
        metadata = {
            "names": names,
            "descr": descr,
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __fallback__(self):
        return False


__all__ = (
    "Cardinal",
    "Option",
    "Flag",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del ArgumentType
