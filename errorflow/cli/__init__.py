"""ErrorFlow command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``errorflow`` script).
"""

from errorflow.cli.main import cli

__all__ = ["cli"]
