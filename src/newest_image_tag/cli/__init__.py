"""Command-line interface for newest-image-tag.

Example:
    $ newest-image-tag --help
    $ newest-image-tag --version
    $ newest-image-tag quay.io/org/app --json-output

Exit Codes:
    0: Success
    1: General error
    2: Usage error (invalid arguments, configuration or image reference)
    3: Registry answered with an error status
    4: Registry unreachable or timed out
    5: Registry response could not be decoded or is not schema 1
    6: Repository has no tags
    7: Cache backend error
"""

from __future__ import annotations

from newest_image_tag.cli.main import cli, main
from newest_image_tag.cli.utils import ExitCode, error, error_exit, info, success

__all__ = ["ExitCode", "cli", "error", "error_exit", "info", "main", "success"]
