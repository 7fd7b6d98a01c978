r"""
Armada decoding engine.

Parser turns a token stream into a decoded, validated instance of a parsable
definition, in three phases:

- setup (construction)
  • build the definition's full ArgumentSet once; recursive definitions fail
    here, before any token is read.
  • derive the matchable view (distinct()) and index it: switch names →
    entry, cardinals in declaration order.
- matching (parse)
  • classify each token as switch or positional; `--` ends switch
    recognition, a greedy cardinal swallows everything left once reached.
  • consume values by arity, convert them with the spec's `type`, check
    `choices`, and record each match as Value(result, ArgumentSource) under
    the entry path.
  • surface user mistakes as position-first faults ("from third position").
- decoding
  • run the decode-once protocol on the root definition with a fresh
    DecodeContext; nested groups share one decoded instance per type and
    every instance is validated exactly once.

Faults honour the runtime flags: `shell` renders them with rich instead of
raising, `deferred` collects them and raises a CommandExit group once the
phase is over.
"""
import difflib
import logging
import os
import re
import shlex
import sys
from collections import deque
from collections.abc import Iterable
from types import EllipsisType
from warnings import catch_warnings

from .argset import build
from .decoding import DecodeContext, decode
from .faults import *
from .parsable import Parsable
from .parsed import ArgumentSource, Origin, Value
from .utils import *

logger = logging.getLogger(__name__)


class Parser:
    """
    Decoding engine bound to one parsable definition.

    Parameters
    - definition: Parsable subclass to decode.
    - name: program name used in fault headers and hints (defaults to the
      definition's type name).
    - shell / fancy / colorful / deferred: runtime flags forwarded to every
      fault (see armada.faults).

    Raises (definition time)
    - TypeError: definition is not parsable, a switch name is declared by two
      different arguments, or a greedy cardinal is not the last cardinal.
    - RecursiveDefinitionError: the definition includes itself through groups.
    """

    def __init__(self, definition, /, *, name=Unset, shell=False, fancy=False, colorful=False, deferred=False):
        if not isinstance(definition, type) or not issubclass(definition, Parsable):
            raise TypeError("Parser() argument must be a parsable definition")
        if not isinstance(name, str | Unset):
            raise TypeError("parser 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError("parser 'name' cannot be empty")

        self._definition = definition
        self._name = coalesce(name, definition.__typename__)
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._deferred = bool(deferred)

        self._arguments = build(definition)
        matchable = self._arguments.distinct()

        switches = {}
        for entry in matchable.switches:
            for switch in entry.names:
                if switch in switches:
                    raise TypeError("switch %r is declared by both %r and %r" % (
                        switch, ".".join(switches[switch].path), ".".join(entry.path)
                    ))
                switches[switch] = entry
        self._switches = switches

        cardinals = tuple(matchable.cardinals)
        for entry in cardinals[:-1]:
            if entry.nargs is Ellipsis:
                raise TypeError("greedy cardinal %r must be the last cardinal" % ".".join(entry.path))
        self._cardinals = cardinals

        self._faults = []
        self._values = {}
        self._tokens = deque()
        self._index = 0
        self._literal = False

    definition = property(lambda self: self._definition)
    arguments = property(lambda self: self._arguments)
    name = mirror("name")
    switches = mirror("switches")
    cardinals = mirror("cardinals")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")
    deferred = mirror("deferred")

    def __repr__(self):
        return "parser(definition=%s, name=%r)" % (self._definition.__qualname__, self._name)

    def trigger(self, fault, /, **options):
        fault = fault.__replace__(
            **options,
            tool=self,
            shell=self._shell,
            fancy=self._fancy,
            colorful=self._colorful,
            deferred=self._deferred,
        )
        if self._deferred:
            self._faults.append(fault)
            return
        trigger(fault)

    def _subject(self, entry, input, start, where=Unset):
        """
        position-first description of what a fault is about.
        """
        if entry.kind == "cardinal":
            subject = "cardinal %r from %s position" % (entry.spec.metavar or entry.key.upper(), ordinal(start + 1))
        else:
            subject = "option %r from %s position" % (input, ordinal(start + 1))
        if where is Unset:
            return subject
        return "value at %s (for %s)" % (where, subject)

    def _resolve_token(self, token):
        r"""
        normalize a raw switch token into (name, value), or None when a fault
        was triggered for it.

        - '--name=value' → ('--name', 'value'); '--name' → ('--name', None)
        - names follow --?[^\W\d_](-?[^\W_]+)*; anything else is malformed.
        - unknown names get a difflib suggestion.
        - an empty inline value on an option is a warning; any inline value on
          a flag is an error.
        """
        match = re.fullmatch(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?", token)

        if not match:
            self.trigger(MalformedTokenError(
                "bad form of option or flag %r at %s position" % (token, ordinal(self._index + 1)),
                title="malformed option or flag",
                code=FaultCode.MALFORMED_TOKEN,
                hint="use '--name value' or '--name=value' (prefix values starting with '-' by '--')",
                token=token,
                index=self._index,
                docs=getdoc(FaultCode.MALFORMED_TOKEN),
            ))
            return None

        input = match["input"]
        value = match["value"]

        try:
            entry = self._switches[input]
        except KeyError:
            suggestions = difflib.get_close_matches(input, self._switches.keys(), 5)
            try:
                hint = "did you mean %r?" % suggestions[0]
            except IndexError:
                if self._switches:
                    hint = "known options and flags are %s" % ", ".join(map(repr, self._switches))
                else:
                    hint = "'%s' takes no options nor flags" % self._name
            self.trigger(UnknownSwitchError(
                "unknown option or flag %r at %s position" % (input, ordinal(self._index + 1)),
                title="unknown option or flag",
                code=FaultCode.UNKNOWN_SWITCH,
                input=input,
                index=self._index,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_SWITCH),
            ))
            return None

        if isinstance(value, str):
            if entry.kind == "option" and not value:
                if entry.spec.inline:
                    hint = "add a value after '=' (for example: %s=<value>)" % input
                else:
                    hint = ("add a value after '=' (for example: %s=<value>)"
                            " or "
                            "remove '=' and pass it after a space (for example: %s <value>)") % (input, input)
                self.trigger(EmptyOptionValueWarning(
                    "empty inline value for option %r at %s position" % (input, ordinal(self._index + 1)),
                    title="empty inline value",
                    code=FaultCode.EMPTY_INLINE_VALUE,
                    input=input,
                    index=self._index,
                    argument=entry.spec,
                    hint=hint,
                    docs=getdoc(FaultCode.EMPTY_INLINE_VALUE),
                ))

            if entry.kind == "flag":
                self.trigger(FlagAssignmentError(
                    "flag %r at %s position cannot have an inline value" % (input, ordinal(self._index + 1)),
                    title="flag cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    input=input,
                    index=self._index,
                    argument=entry.spec,
                    hint="remove everything from '=' (for example: %s)" % input,
                    docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                ))

        return input, value

    def _getvalues(self, entry, input, start, tokens, origins):
        """
        consume, convert and check the value(s) of a cardinal or an option.

        parameters
        - entry: the matched ArgumentDefinition.
        - input: the switch name as typed (options) or the field name (cardinals).
        - start: 0-based index of the token that introduced the argument.
        - tokens: deque to consume from; anything but self._tokens means the
          inline form (values split out of '--name=value').
        - origins: list receiving an Origin for every spaced token consumed.

        returns
        - a single converted value for arities Unset/"?" (the spec default when
          "?" got nothing), a list otherwise.
        """
        spec = entry.spec
        nargs = spec.nargs
        inline = tokens is not self._tokens
        values = []

        def peekable():
            if not tokens:
                return False
            if inline or nargs is Ellipsis or self._literal:
                return True
            return not tokens[0].startswith("-") or tokens[0] == "-"

        def take():
            raw = tokens.popleft()
            if inline:
                where = "%s subposition" % ordinal(len(values) + 1)
            else:
                where = "%s position" % ordinal(self._index + 1)
                origins.append(Origin(self._index, raw))
                self._index += 1
            values.append((where, raw.strip()))

        match nargs:
            case None | "?":
                if nargs is None and not peekable():
                    self.trigger(OptionValueRequiredError(
                        "option %r at %s position requires a value" % (input, ordinal(start + 1)),
                        title="missing option value",
                        code=FaultCode.OPTION_VALUE_REQUIRED,
                        input=input,
                        index=start,
                        argument=spec,
                        hint="provide a value (for example: %s=<value>)" % input,
                        docs=getdoc(FaultCode.OPTION_VALUE_REQUIRED),
                    ))
                if peekable():
                    take()
                if inline and tokens:
                    self.trigger(InlineExtraValuesError(
                        "option %r at %s position has extra inline values" % (input, ordinal(start + 1)),
                        title="extra inline values",
                        code=FaultCode.INLINE_EXTRA_VALUES,
                        input=input,
                        index=start,
                        argument=spec,
                        hint="use a single value in the inline form (for example: %s=<value>)" % input,
                        docs=getdoc(FaultCode.INLINE_EXTRA_VALUES),
                    ))

            case "*" | "+" | EllipsisType():
                if nargs == "+" and not peekable():
                    self.trigger(AtLeastOneValueRequiredError(
                        "%s requires at least one value" % self._subject(entry, input, start),
                        title="missing value",
                        code=FaultCode.AT_LEAST_ONE_VALUE_REQUIRED,
                        input=input,
                        index=start,
                        argument=spec,
                        hint="provide one or more values after %s" % input,
                        docs=getdoc(FaultCode.AT_LEAST_ONE_VALUE_REQUIRED),
                    ))
                while peekable():
                    take()

            case int():
                while peekable() and len(values) < nargs:
                    take()
                if len(values) < nargs:
                    self.trigger(NotEnoughValuesError(
                        "%s requires exactly %d value%s, got %d" % (
                            self._subject(entry, input, start), nargs, "s" * (nargs != 1), len(values)
                        ),
                        title="not enough values",
                        code=FaultCode.NOT_ENOUGH_VALUES,
                        input=input,
                        index=start,
                        argument=spec,
                        hint="add the missing value%s" % ("s" * (nargs - len(values) != 1)),
                        docs=getdoc(FaultCode.NOT_ENOUGH_VALUES),
                    ))
                if inline and tokens:
                    self.trigger(InlineExtraValuesError(
                        "option %r at %s position has extra inline values" % (input, ordinal(start + 1)),
                        title="extra inline values",
                        code=FaultCode.INLINE_EXTRA_VALUES,
                        input=input,
                        index=start,
                        argument=spec,
                        hint="keep exactly %d inline value%s" % (nargs, "s" * (nargs != 1)),
                        docs=getdoc(FaultCode.INLINE_EXTRA_VALUES),
                    ))

        typename = getattr(spec.type, "__name__", "value")
        result = []

        for where, raw in values:
            if not raw:
                self.trigger(EmptyValueError(
                    "empty %s" % self._subject(entry, input, start, where),
                    title="empty value",
                    code=FaultCode.EMPTY_VALUE,
                    input=input,
                    index=start,
                    argument=spec,
                    hint="provide a non-empty %s" % typename,
                    docs=getdoc(FaultCode.EMPTY_VALUE),
                ))
                continue

            try:
                with catch_warnings(record=True, action="always") as warnings:
                    object = spec.type(raw)
            except Exception as exception:
                self.trigger(ConversionError(
                    "%s cannot be converted" % self._subject(entry, input, start, where),
                    title="conversion error",
                    code=FaultCode.CONVERSION_ERROR,
                    input=input,
                    index=start,
                    argument=spec,
                    hint="use a valid %s (got %r)" % (typename, raw),
                    docs=getdoc(FaultCode.CONVERSION_ERROR),
                    exception=exception,
                ))
                continue

            for warning in map(lambda warning: warning.message, warnings):
                self.trigger(ConversionWarning(
                    "%s raised a conversion warning" % self._subject(entry, input, start, where),
                    title="conversion warning",
                    code=FaultCode.CONVERSION_WARNING,
                    input=input,
                    index=start,
                    argument=spec,
                    hint="check the value format; expected %s" % typename,
                    docs=getdoc(FaultCode.CONVERSION_WARNING),
                    warning=warning,
                ))

            if spec.choices and object not in spec.choices:
                self.trigger(InvalidChoiceError(
                    "%s is not a valid choice" % self._subject(entry, input, start, where),
                    title="invalid choice",
                    code=FaultCode.INVALID_CHOICE,
                    input=input,
                    index=start,
                    argument=spec,
                    hint="use one of: %s" % " · ".join(map(str, spec.choices)),
                    docs=getdoc(FaultCode.INVALID_CHOICE),
                ))
                continue

            result.append(object)

        if nargs is None or nargs == "?":
            return result[0] if result else spec.default
        return result

    def _finalize(self):
        """
        flush deferred faults: warnings are emitted, exceptions (if any) are
        raised as a single CommandExit carrying the runtime flags.
        """
        exceptions = []
        warnings = []

        for fault in self._faults:
            if isinstance(fault, CommandException):
                exceptions.append(fault)
            elif isinstance(fault, CommandWarning):
                warnings.append(fault)
            else:
                raise RuntimeError("unexpected fault")
        self._faults.clear()

        for warning in warnings:
            trigger(warning)

        if not exceptions:
            return

        trigger(
            CommandExit(exceptions),
            tool=self,
            shell=self._shell,
            fancy=self._fancy,
            colorful=self._colorful,
            deferred=self._deferred,
        )

    def _parseargs(self, tokens):
        """
        match tokens against the argument set, then decode the definition.

        matched values are keyed by entry path; every entry that matched
        nothing decodes to its default later on, through its own declaration.
        """
        self._faults.clear()
        self._values = {}
        self._tokens = deque(tokens)
        self._index = 0
        self._literal = False

        logger.debug("parsing %d token(s) for %s", len(self._tokens), self._definition.__qualname__)

        cardinals = deque(self._cardinals)
        while self._tokens:
            token = self._tokens.popleft()

            if token == "--" and not self._literal:
                self._literal = True
                self._index += 1
                continue

            if token.startswith("-") and token != "-" and not self._literal:
                if (resolved := self._resolve_token(token)) is None:
                    self._index += 1
                    continue
                input, value = resolved
                entry = self._switches[input]
            else:
                try:
                    entry = cardinals.popleft()
                except IndexError:
                    self.trigger(UnexpectedCardinalError(
                        "unexpected positional argument %r from %s position" % (token, ordinal(self._index + 1)),
                        title="unexpected positional",
                        code=FaultCode.UNEXPECTED_CARDINAL,
                        input=token,
                        index=self._index,
                        hint="remove this extra value (or prefix values starting with '-' by '--')",
                        docs=getdoc(FaultCode.UNEXPECTED_CARDINAL),
                    ))
                    self._index += 1
                    continue
                input, value = entry.key, Unset
                # put the token back so the cardinal consumes it with its peers
                self._tokens.appendleft(token)

            if entry.spec.deprecated:
                if entry.kind == "cardinal":
                    kind = "positional argument"
                    message = "positional argument from %s position is deprecated" % ordinal(self._index + 1)
                else:
                    kind = entry.kind
                    message = "%s %r at %s position is deprecated" % (kind, input, ordinal(self._index + 1))
                self.trigger(DeprecatedArgumentWarning(
                    message,
                    title="deprecated %s" % kind,
                    code=FaultCode.DEPRECATED_ARGUMENT,
                    input=input,
                    index=self._index,
                    argument=entry.spec,
                    hint="it may be removed in a future version",
                    docs=getdoc(FaultCode.DEPRECATED_ARGUMENT),
                ))

            if entry.path in self._values:
                self.trigger(DuplicatedSwitchError(
                    "%s %r at %s position was already provided" % (entry.kind, input, ordinal(self._index + 1)),
                    title="duplicated %s" % entry.kind,
                    code=FaultCode.DUPLICATED_SWITCH,
                    input=input,
                    index=self._index,
                    argument=entry.spec,
                    hint="keep a single %s; each %s can be specified only once" % (entry.kind, entry.kind),
                    docs=getdoc(FaultCode.DUPLICATED_SWITCH),
                ))

            start = self._index
            origins = []

            match entry.kind:
                case "cardinal":
                    result = self._getvalues(entry, input, start, self._tokens, origins)
                case "option":
                    origins.append(Origin(start, token))
                    self._index += 1
                    if entry.spec.inline and not value:
                        self.trigger(MissingInlineValueError(
                            "option %r at %s position must include an inline value" % (input, ordinal(start + 1)),
                            title="missing inline value",
                            code=FaultCode.MISSING_INLINE_VALUE,
                            input=input,
                            index=start,
                            argument=entry.spec,
                            hint="use the inline form: %s=<value>" % input,
                            docs=getdoc(FaultCode.MISSING_INLINE_VALUE),
                        ))
                    if value and entry.nargs not in (None, "?"):
                        # strongest separator first
                        tokens = deque(value.split(os.pathsep if os.pathsep in value else ":" if ":" in value else ","))
                    elif value:
                        tokens = deque((value,))
                    else:
                        tokens = self._tokens
                    result = self._getvalues(entry, input, start, tokens, origins)
                case "flag":
                    origins.append(Origin(start, token))
                    self._index += 1
                    result = True
                case _:
                    raise RuntimeError("unexpected argument")

            self._values[entry.path] = Value(result, ArgumentSource(origins))
            logger.debug("matched %s from %r", ".".join(entry.path), tuple(origin.token for origin in origins))

        missing = [
            entry for entry in cardinals
            if entry.nargs is None or entry.nargs == "+" or isinstance(entry.nargs, int)
        ]
        if missing:
            self.trigger(MissingCardinalsError(
                "missing required cardinal%s %s" % (
                    "s" * (len(missing) > 1),
                    ", ".join(repr(entry.spec.metavar or entry.key.upper()) for entry in missing),
                ),
                title="missing cardinals",
                code=FaultCode.MISSING_CARDINALS,
                index=self._index,
                hint="add the missing values in declaration order",
                docs=getdoc(FaultCode.MISSING_CARDINALS),
            ))

        self._finalize()

        context = DecodeContext(self._values)
        try:
            parsed = decode(self._definition, context)
        except UserValidationError as exception:
            self.trigger(exception)
            self._finalize()
            raise

        self._finalize()
        return parsed.value

    def parse(self, prompt=Unset, /):
        """
        Parse a token stream into an instance of the definition.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence; each element is trimmed and
            empty elements are dropped.

        Raises
        - TypeError: when prompt is not Unset/str/Iterable[str].
        - CommandException (or CommandExit when deferred): user input faults,
          UserValidationError included. In shell mode faults are printed and
          the process exits instead.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            def _sanitized(iterable):
                for item in iterable:
                    if not isinstance(item, str):
                        raise TypeError("parse() argument must be a string or an iterable of strings")
                    if item := item.strip():
                        yield item
            tokens = list(_sanitized(prompt))
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        return self._parseargs(tokens)


def parse(definition, prompt=Unset, /, **options):
    """
    Convenience runner: Parser(definition, **options).parse(prompt).
    """
    return Parser(definition, **options).parse(prompt)


__all__ = (
    "Parser",
    "parse",
)
