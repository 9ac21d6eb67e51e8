# =============================================================================
# src/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m src.cli members --token T
#
# Delegates to the content feed CLI, the only subcommand.
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

import sys

from src.cli.content import main

sys.exit(main())
