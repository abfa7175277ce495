"""Error taxonomy.

Fatal problems raise one of these and abort the build before any output is
written. Recoverable problems never raise: they end up in the ``ignored``
maps and are logged as warnings.
"""

from __future__ import annotations


class BuilderError(Exception):
    pass


class ManifestError(BuilderError, ValueError):
    """The package manifest is missing a field or has an unusable shape."""


class ExportsError(BuilderError, ValueError):
    """The ``exports`` declaration cannot be turned into entry points."""


class BuildToolError(BuilderError, RuntimeError):
    """The external build tool reported a failure."""
