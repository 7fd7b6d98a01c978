__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'armada'
__author__ = 'Armada contributors'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .arguments import *
from .argset import *
from .decoding import *
from .faults import *
from .groups import *
from .parsable import *
from .parsed import *
from .parser import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the argument specifications
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the argument set builder
__all__ += argset.__all__  # type: ignore[attr-defined]
# Load the exposed API of the group decoder
__all__ += decoding.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the groups
__all__ += groups.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parsable definitions
__all__ += parsable.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parsed-property cells
__all__ += parsed.__all__  # type: ignore[attr-defined]
# Load the exposed API of the decoding engine
__all__ += parser.__all__  # type: ignore[attr-defined]
