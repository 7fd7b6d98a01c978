from rich.pretty import pprint

from armada import *

__prog__ = "armada-demo"


class Global(Parsable):
    verbose = Flag("-v", "--verbose", descr="print what is going on")


class Options(Parsable):
    source = Cardinal("SOURCE")
    name = Option("-n", "--name", default="world")
    globals = Group(Global)


if __name__ == '__main__':
    pprint(Options.parse(shell=True, colorful=True))
