"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class SourceError(PipelineError):
    """Raised when the source directory is missing or holds no archives."""

    error_code = "SOURCE_ERROR"


class ValidationError(PipelineError):
    """Raised for query parameters a caller must reject."""

    error_code = "VALIDATION_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that abort a year or the index build."""

    error_code = "STAGE_ERROR"


class ArchiveError(StageError):
    """Raised when a top-level archive cannot be opened."""

    error_code = "ARCHIVE_ERROR"


class ArtifactWriteError(StageError):
    """Raised when a chunk, manifest or index artifact cannot be written."""

    error_code = "ARTIFACT_WRITE_ERROR"
