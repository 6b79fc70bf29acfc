"""Exception types raised by the catalog pipeline."""

from __future__ import annotations


class OscalCatError(Exception):
    """Base class for all oscalcat errors."""


class CatalogStructureError(OscalCatError, ValueError):
    """The raw catalog or a derived artifact is structurally invalid.

    Always fatal for the run: the catalog is a trusted artifact, so a missing
    required field points at upstream corruption or a pipeline bug.
    """


class ToolMappingError(OscalCatError, ValueError):
    """A tool-to-control mapping document is malformed."""


class DownloadError(OscalCatError):
    """A raw OSCAL source could not be fetched or failed its root check."""


class ConfigurationError(OscalCatError):
    """Configuration or reference data could not be loaded."""
