"""Fatal pipeline errors.

Recoverable conditions (missing join data, malformed numbers) are logged and
skipped by the stages themselves; only these abort a run.
"""


class PipelineError(RuntimeError):
    """Base class for errors that abort a pipeline run."""


class DataFileError(PipelineError):
    """An input file is missing, unreadable or lacks a required column/series."""


class StrategyError(PipelineError, ValueError):
    """The phase table or fleet configuration is invalid."""
