"""
ts-reconcile - Reconcile Qt Linguist TS translation catalogs with scanned source strings.
"""

import sys

from .main import main as cli_main
from .utils.core.version import get_version

__version__ = get_version()


def main() -> None:
    """Console script entry point."""
    sys.exit(cli_main())


__all__ = ["main", "__version__"]
