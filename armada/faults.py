"""
Armada faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings). Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- CommandExit: exception group raised when deferred faults are flushed.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.
- RecursiveDefinitionError: definition-time failure of the argument set builder.

UX goals
- Position-first messages: every message includes the ordinal position so users
  can learn by trying (“from third position”, etc.).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The parser collects faults during matching/decoding and calls trigger(fault, **ctx).
- In non-shell mode, exceptions are raised; in shell mode, they are rendered via rich.
"""
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the parser (stable identifiers).

    grouping (by high-level domain)
    - switches (options/flags) (1111x/1112x)
      • MALFORMED_TOKEN, UNKNOWN_SWITCH, FLAG_ASSIGNMENT, MISSING_INLINE_VALUE,
        DUPLICATED_SWITCH, OPTION_VALUE_REQUIRED, INLINE_EXTRA_VALUES,
        AT_LEAST_ONE_VALUE_REQUIRED, NOT_ENOUGH_VALUES, EMPTY_VALUE,
        INVALID_CHOICE, MISSING_CARDINALS
    - positionals (cardinals) (11121)
      • UNEXPECTED_CARDINAL
    - conversions (11131 / 12131)
      • CONVERSION_ERROR, CONVERSION_WARNING
    - decoding (1115x)
      • USER_VALIDATION
    - deprecations (12112)
      • DEPRECATED_ARGUMENT

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired.
    """
    # --- switch/flag/option errors (11xxx) ---
    MALFORMED_TOKEN             = 11111
    UNKNOWN_SWITCH              = 11112
    FLAG_ASSIGNMENT             = 11113
    MISSING_INLINE_VALUE        = 11114
    DUPLICATED_SWITCH           = 11115
    OPTION_VALUE_REQUIRED       = 11117
    INLINE_EXTRA_VALUES         = 11118
    AT_LEAST_ONE_VALUE_REQUIRED = 11119
    NOT_ENOUGH_VALUES           = 11122
    EMPTY_VALUE                 = 11123
    INVALID_CHOICE              = 11124
    MISSING_CARDINALS           = 11125

    # --- positional/cardinal errors (11xxx) ---
    UNEXPECTED_CARDINAL         = 11121

    # --- conversion errors (11xxx) ---
    CONVERSION_ERROR            = 11131

    # --- decoding errors (11xxx) ---
    USER_VALIDATION             = 11151

    # --- warnings (12xxx) ---
    EMPTY_INLINE_VALUE          = 12111
    DEPRECATED_ARGUMENT         = 12112
    CONVERSION_WARNING          = 12131

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class _Fault:
    """
    shared behavior of user-facing faults: message + options, rich rendering
    and option merging.

    each concrete base declares a __palette__ with its header/body styles; the
    host may override any entry through a __styles__ mapping in __main__.
    """
    __palette__ = {}

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)
        super().__init__(*(() if message is Unset else (message,)))

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | type(self).__palette__ | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), styles[style])

        prog = getattr(main, "__prog__", getattr(self.options.get("tool"), "name", "armada"))

        parts = ["[ ", text(prog, "prog-name")]
        if (code := self.options.get("code")) is not None:
            parts += [" — ", text(code.normalize(), "code")]
        parts += [" | ", text(str(self.options.get("title", type(self).__name__)).title(), "title"), " ]"]
        header = Text.assemble(*parts)

        message = text(self.message, "message")
        hint = Text.assemble(text(" → ", "hint-arrow"), text(self.options.get("hint"), "hint"))

        if fancy:
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(message, hint), title=header, title_align="left", width=width)

        return Group(header, message, hint)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class CommandException(_Fault, Exception):
    __palette__ = {
        "code": "bold #00E5FF",  # neon cyan fault code
        "title": "bold #FF4DA6",  # friendly pinky title
        "message": "#C8C8D0",  # soft light gray message
    }

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            # keep the delegated exception (converter, validate()) as the cause
            raise self from self.options.get("exception")
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)


class MalformedTokenError(CommandException): ...
class UnknownSwitchError(CommandException): ...
class FlagAssignmentError(CommandException): ...
class UnexpectedCardinalError(CommandException): ...
class DuplicatedSwitchError(CommandException): ...
class MissingInlineValueError(CommandException): ...
class OptionValueRequiredError(CommandException): ...
class InlineExtraValuesError(CommandException): ...
class AtLeastOneValueRequiredError(CommandException): ...
class NotEnoughValuesError(CommandException): ...
class ConversionError(CommandException): ...
class EmptyValueError(CommandException): ...
class InvalidChoiceError(CommandException): ...
class MissingCardinalsError(CommandException): ...


class UserValidationError(CommandException):
    """
    a decoded value's own validate() rejected it.

    the original exception is kept as `underlying` (and chained as __cause__
    when raised through trigger) so callers can inspect what the user code
    complained about. the nested value that failed is exposed as `value`.
    """

    @property
    def underlying(self):
        return self.options.get("exception")

    @property
    def value(self):
        return self.options.get("value")


class CommandWarning(_Fault, Warning):
    __palette__ = {
        "code": "bold #FFB400",  # amber fault code for warnings
        "title": "bold #FFC2E0",  # softer pinky title for warnings
        "message": "#D6D6DE",  # slightly lighter gray body
        "hint-arrow": "#B8EFAF dim",  # softer green arrow
        "hint": "italic #B8EFAF",  # softer green hint text
    }

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)


class EmptyOptionValueWarning(CommandWarning): ...
class DeprecatedArgumentWarning(CommandWarning): ...
class ConversionWarning(CommandWarning): ...


class CommandExit(ExceptionGroup):
    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title (Bad Exit)
        } | getattr(main, "__styles__", {}))

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if colorful else "")

        prog = getattr(main, "__prog__", getattr(self.options.get("tool"), "name", "armada"))
        header = Text.assemble("[ ", text(prog, "prog-name"), " — ", text(self.message.title(), "title"), " ]")

        renders = [exception.__replace__(ratio=2 / 3) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


class RecursiveDefinitionError(TypeError):
    """
    a parsable definition transitively includes itself through its groups.

    raised by the argument set builder before any token is matched; `chain`
    holds the definitions from the outermost one to the repeated one.
    """

    def __init__(self, chain, /):
        self.chain = tuple(chain)
        super().__init__("recursive definition %s" % " → ".join(
            getattr(definition, "__qualname__", repr(definition)) for definition in self.chain
        ))


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised.

    typical options
    - tool, shell, fancy, colorful, deferred, title, code, hint, docs, and any other
      context the reporter may want to show (e.g., input/index/argument).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "UnexpectedCardinalError",
    "DuplicatedSwitchError",
    "MissingInlineValueError",
    "OptionValueRequiredError",
    "InlineExtraValuesError",
    "AtLeastOneValueRequiredError",
    "NotEnoughValuesError",
    "ConversionError",
    "EmptyValueError",
    "InvalidChoiceError",
    "MissingCardinalsError",
    "UserValidationError",
    "CommandWarning",
    "EmptyOptionValueWarning",
    "DeprecatedArgumentWarning",
    "ConversionWarning",
    "CommandExit",
    "RecursiveDefinitionError",
    "FaultCode",
    "trigger",
    "getdoc",
)
