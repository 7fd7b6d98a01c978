# python
"""
Decoding engine behavioral tests (tokens → validated instances).

Scope
- Scenarios: nested group decoding, shared groups decoded once.
- Matching: options (spaced/inline), flags, cardinals by arity, '--', greedy.
- Provenance: 0-based token origins recorded per property.
- Faults: position-first errors raised immediately, collected as a CommandExit
  in deferred mode, rendered with rich in shell mode; warnings.
- Definition-time checks: switch clashes, greedy placement, recursion.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import unittest
import warnings
from unittest import TestCase, mock

from rich.console import Console

from armada import (
    Parsable,
    Parser,
    Cardinal,
    Option,
    Flag,
    Group,
    Origin,
    DecodeContext,
    FaultCode,
    CommandExit,
    UnknownSwitchError,
    MalformedTokenError,
    FlagAssignmentError,
    OptionValueRequiredError,
    DuplicatedSwitchError,
    MissingInlineValueError,
    InlineExtraValuesError,
    NotEnoughValuesError,
    AtLeastOneValueRequiredError,
    MissingCardinalsError,
    ConversionError,
    InvalidChoiceError,
    EmptyValueError,
    UnexpectedCardinalError,
    UserValidationError,
    DeprecatedArgumentWarning,
    EmptyOptionValueWarning,
    ConversionWarning,
    parse,
    source,
)


class Global(Parsable):
    verbose = Flag("-v", "--verbose")


class Options(Parsable):
    name = Option("--name")
    globals = Group(Global)


class Twice(Parsable):
    first = Group(Global)
    second = Group(Global)


class Copy(Parsable):
    source = Cardinal("SRC")
    targets = Cardinal("DST", nargs="+")
    mode = Option("-m", "--mode", choices=("fast", "safe"), default="safe")


class Echo(Parsable):
    words = Cardinal("WORD", nargs="*")
    force = Flag("-f", "--force")


class Run(Parsable):
    verbose = Flag("-v")
    command = Cardinal(nargs=Ellipsis)


class Point(Parsable):
    coordinates = Option("--at", type=float, nargs=2)
    tags = Option("--tags", nargs="*")
    output = Option("--out", inline=True)
    label = Option("--label", nargs="?", default="none")
    ids = Option("--ids", type=int, nargs="+")


class Port(Parsable):
    port = Option("--port", type=int, default=8080)

    def validate(self):
        if not 0 <= self.port < 65536:
            raise ValueError("port out of range")


class Server(Parsable):
    listen = Group(Port)
    old = Flag("--old", deprecated=True)


class TestScenarios(TestCase):

    def testNestedGroup(self):
        parsed = Options.parse(["--name", "x", "--verbose"])
        self.assertEqual(parsed, Options(name="x", globals=Global(verbose=True)))
        self.assertEqual(repr(parsed), "Options(name='x', globals=Global(verbose=True))")

    def testNestedGroupArgumentsInDeclaredOrder(self):
        self.assertEqual(Parser(Options).arguments.names, ("--name", "-v", "--verbose"))

    def testSharedGroupDecodedOnce(self):
        with mock.patch.object(DecodeContext, "decode", autospec=True, side_effect=DecodeContext.decode) as spy:
            parsed = Twice.parse(["--verbose"])
        self.assertEqual(parsed.first, Global(verbose=True))
        self.assertEqual(parsed.second, Global(verbose=True))
        decoded = [call.args[1] for call in spy.call_args_list]
        self.assertEqual(decoded.count(Global), 1)

    def testFunctionalEntryPoint(self):
        self.assertEqual(parse(Options, "--name y"), Options(name="y", globals=Global(verbose=False)))

    def testDefaultsWhenNothingMatches(self):
        parsed = Options.parse([])
        self.assertIsNone(parsed.name)
        self.assertFalse(parsed.globals.verbose)

    def testReadsSysArgvByDefault(self):
        with mock.patch("sys.argv", ["prog", "--name", "argv"]):
            self.assertEqual(Options.parse().name, "argv")


class TestMatching(TestCase):

    def testCardinalsInDeclarationOrder(self):
        parsed = Copy.parse(["a", "b", "c"])
        self.assertEqual(parsed.source, "a")
        self.assertEqual(parsed.targets, ["b", "c"])
        self.assertEqual(parsed.mode, "safe")

    def testSwitchesBetweenCardinals(self):
        parsed = Copy.parse(["a", "--mode", "fast", "b"])
        self.assertEqual((parsed.source, parsed.targets, parsed.mode), ("a", ["b"], "fast"))

    def testDoubleDashEndsSwitches(self):
        parsed = Echo.parse(["--", "-x", "--force"])
        self.assertEqual(parsed.words, ["-x", "--force"])
        self.assertFalse(parsed.force)

    def testGreedySwallowsSwitchesOnceReached(self):
        parsed = Run.parse(["-v", "ls", "-la"])
        self.assertTrue(parsed.verbose)
        self.assertEqual(parsed.command, ["ls", "-la"])
        parsed = Run.parse(["ls", "-v"])
        self.assertFalse(parsed.verbose)
        self.assertEqual(parsed.command, ["ls", "-v"])

    def testHiddenAndDescribedArgumentsMatchLikeAnyOther(self):
        class Quiet(Parsable):
            level = Option("--level", type=int, default=0, descr="noise level", hidden=True)
            force = Flag("--force", hidden=True)

        class Shell(Parsable):
            quiet = Group(Quiet, descr="quiet mode", hidden=True)
            target = Cardinal("TARGET", descr="what to run", hidden=True)

        parsed = Shell.parse(["--level", "2", "--force", "x"])
        self.assertEqual((parsed.quiet.level, parsed.quiet.force, parsed.target), (2, True, "x"))

    def testFixedArityConverted(self):
        self.assertEqual(Point.parse(["--at", "1", "2.5"]).coordinates, [1.0, 2.5])

    def testInlineValuesSplit(self):
        self.assertEqual(Point.parse(["--tags=a,b,c"]).tags, ["a", "b", "c"])

    def testInlineOnlyOption(self):
        self.assertEqual(Point.parse(["--out=file.txt"]).output, "file.txt")

    def testOptionalSingleFallsBackToDefault(self):
        self.assertEqual(Point.parse(["--label"]).label, "none")
        self.assertEqual(Point.parse(["--label", "x"]).label, "x")

    def testStringPrompt(self):
        self.assertEqual(Options.parse("--name 'a b' -v").name, "a b")

    def testPromptItemsMustBeStrings(self):
        with self.assertRaises(TypeError):
            Options.parse(["--name", 1])


class TestProvenance(TestCase):

    def testSpacedOptionOrigins(self):
        parsed = Options.parse(["--verbose", "--name", "x"])
        self.assertEqual(source(parsed, "name").origins, (Origin(1, "--name"), Origin(2, "x")))
        self.assertEqual(source(parsed, "globals").tokens, ("--verbose",))

    def testInlineOptionOrigin(self):
        parsed = Options.parse(["--name=x"])
        self.assertEqual(source(parsed, "name").origins, (Origin(0, "--name=x"),))

    def testDefaultsHaveEmptyProvenance(self):
        self.assertFalse(source(Options.parse([]), "name"))

    def testAdoptedGroupHasEmptyProvenance(self):
        parsed = Twice.parse(["-v"])
        self.assertEqual(source(parsed, "first").tokens, ("-v",))
        self.assertFalse(source(parsed, "second"))

    def testCardinalOrigins(self):
        parsed = Copy.parse(["a", "-m", "fast", "b", "c"])
        self.assertEqual(source(parsed, "targets").indices, (3, 4))


class TestFaults(TestCase):

    def testUnknownSwitchSuggestsName(self):
        with self.assertRaises(UnknownSwitchError) as caught:
            Options.parse(["--nme", "x"])
        self.assertIn("--name", caught.exception.options["hint"])
        self.assertIn("first position", caught.exception.message)

    def testMalformedToken(self):
        with self.assertRaises(MalformedTokenError):
            Options.parse(["--bad_name"])

    def testFlagAssignment(self):
        with self.assertRaises(FlagAssignmentError):
            Options.parse(["--verbose=yes"])

    def testOptionValueRequired(self):
        with self.assertRaises(OptionValueRequiredError):
            Options.parse(["--name"])

    def testDuplicatedSwitch(self):
        with self.assertRaises(DuplicatedSwitchError) as caught:
            Options.parse(["--name", "a", "--name", "b"])
        self.assertIn("third position", caught.exception.message)

    def testMissingInlineValue(self):
        with self.assertRaises(MissingInlineValueError):
            Point.parse(["--out", "file.txt"])

    def testInlineExtraValues(self):
        with self.assertRaises(InlineExtraValuesError):
            Point.parse(["--at=1,2,3"])

    def testNotEnoughValues(self):
        with self.assertRaises(NotEnoughValuesError):
            Point.parse(["--at", "1"])

    def testAtLeastOneValueRequired(self):
        with self.assertRaises(AtLeastOneValueRequiredError):
            Point.parse(["--ids"])

    def testMissingCardinals(self):
        with self.assertRaises(MissingCardinalsError) as caught:
            Copy.parse(["a"])
        self.assertIn("'DST'", caught.exception.message)

    def testConversionErrorKeepsCause(self):
        with self.assertRaises(ConversionError) as caught:
            Point.parse(["--at", "1", "north"])
        self.assertIsInstance(caught.exception.__cause__, ValueError)
        self.assertIn("third position", caught.exception.message)

    def testInvalidChoice(self):
        with self.assertRaises(InvalidChoiceError):
            Copy.parse(["a", "b", "--mode", "slow"])

    def testEmptyInlineValue(self):
        with self.assertRaises(EmptyValueError):
            Point.parse(["--tags=a,,b"])

    def testUnexpectedCardinal(self):
        with self.assertRaises(UnexpectedCardinalError):
            Options.parse(["stray"])

    def testUserValidationError(self):
        with self.assertRaises(UserValidationError) as caught:
            Server.parse(["--port", "70000"])
        self.assertIsInstance(caught.exception.underlying, ValueError)
        self.assertIs(caught.exception.__cause__, caught.exception.underlying)
        self.assertIsInstance(caught.exception.value, Port)

    def testDeferredFaultsAreGrouped(self):
        with self.assertRaises(CommandExit) as caught:
            Parser(Options, deferred=True).parse(["--nme", "--name"])
        kinds = [type(exception) for exception in caught.exception.exceptions]
        self.assertEqual(kinds, [UnknownSwitchError, OptionValueRequiredError])

    def testDeferredValidationIsGrouped(self):
        with self.assertRaises(CommandExit) as caught:
            Parser(Server, deferred=True).parse(["--port=-1"])
        self.assertIsInstance(caught.exception.exceptions[0], UserValidationError)

    def testFaultsCarryRuntimeOptions(self):
        parser = Parser(Options, name="tool")
        with self.assertRaises(UnknownSwitchError) as caught:
            parser.parse(["--nme"])
        self.assertIs(caught.exception.options["tool"], parser)
        self.assertEqual(caught.exception.options["code"], FaultCode.UNKNOWN_SWITCH)


class TestWarnings(TestCase):

    def testDeprecatedArgument(self):
        with self.assertWarns(DeprecatedArgumentWarning):
            self.assertTrue(Server.parse(["--old"]).old)

    def testEmptyInlineValueFallsBackToSpaced(self):
        with self.assertWarns(EmptyOptionValueWarning):
            self.assertEqual(Options.parse(["--name=", "x"]).name, "x")

    def testConversionWarning(self):
        def lenient(raw):
            warnings.warn("rounded", UserWarning)
            return round(float(raw))

        class Budget(Parsable):
            amount = Option("--amount", type=lenient)

        with self.assertWarns(ConversionWarning):
            self.assertEqual(Budget.parse(["--amount", "2.4"]).amount, 2)


class TestShell(TestCase):

    def setUp(self):
        self.buffer = io.StringIO()
        patcher = mock.patch("armada.faults.console", Console(file=self.buffer, width=120))
        patcher.start()
        self.addCleanup(patcher.stop)

    def testFaultIsRenderedAndExits(self):
        with self.assertRaises(SystemExit) as caught:
            Parser(Options, name="demo", shell=True).parse(["--nme"])
        self.assertEqual(caught.exception.code, 1)
        output = self.buffer.getvalue()
        self.assertIn("demo", output)
        self.assertIn("11112", output)
        self.assertIn("unknown option or flag '--nme' at first position", output)
        self.assertIn("did you mean '--name'?", output)

    def testDeferredFaultsRenderedTogether(self):
        with self.assertRaises(SystemExit):
            Parser(Copy, shell=True, deferred=True, fancy=True).parse(["--mode", "slow"])
        output = self.buffer.getvalue()
        self.assertIn("Bad Exit", output)
        self.assertIn("Invalid Choice", output)
        self.assertIn("Missing Cardinals", output)

    def testWarningIsRenderedWithoutExit(self):
        self.assertTrue(Parser(Server, shell=True).parse(["--old"]).old)
        self.assertIn("deprecated", self.buffer.getvalue())


class TestDefinitionTime(TestCase):

    def testSwitchClash(self):
        class Clash(Parsable):
            a = Flag("-x")
            b = Option("-x")

        with self.assertRaises(TypeError):
            Parser(Clash)

    def testGreedyMustBeLast(self):
        class Misplaced(Parsable):
            rest = Cardinal(nargs=Ellipsis)
            tail = Cardinal("TAIL")

        with self.assertRaises(TypeError):
            Parser(Misplaced)

    def testRejectsNonParsable(self):
        with self.assertRaises(TypeError):
            Parser(Global(verbose=True))

    def testNameDefaultsToTypeName(self):
        self.assertEqual(Parser(Options).name, "options")
        self.assertEqual(Parser(Options, name="tool").name, "tool")


if __name__ == "__main__":
    unittest.main()
