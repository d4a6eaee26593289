"""
smotree.exceptions - Custom exception classes.

All SmoTree-specific exceptions inherit from SmoTreeError.
"""


class SmoTreeError(Exception):
    """Base exception for all SmoTree errors."""

    pass


class ConfigError(SmoTreeError):
    """Configuration loading or validation error."""

    pass


class ProjectError(SmoTreeError):
    """Project or comment lookup error."""

    pass


class ProjectNotFoundError(ProjectError):
    """No project with the requested id."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class CommentNotFoundError(ProjectError):
    """No comment with the requested id in the project."""

    def __init__(self, project_id: str, comment_id: str):
        self.project_id = project_id
        self.comment_id = comment_id
        super().__init__(f"Comment {comment_id} not found in project {project_id}")


class StorageError(SmoTreeError):
    """Project store read/write error."""

    pass


class ExportError(SmoTreeError):
    """Marker export or import error."""

    pass


class TimecodeError(SmoTreeError, ValueError):
    """Base class for timecode conversion errors."""

    pass


class InvalidArgumentError(TimecodeError):
    """Negative time, negative frame, or non-positive framerate."""

    pass


class TimecodeFormatError(TimecodeError):
    """Timecode string is not four colon-separated numeric fields."""

    def __init__(self, timecode: str, reason: str = "expected HH:MM:SS:FF"):
        self.timecode = timecode
        super().__init__(f"Invalid timecode format {timecode!r}: {reason}")


class TimecodeRangeError(TimecodeError):
    """A timecode field is out of range for the framerate."""

    def __init__(self, timecode: str, field: str, value: int, limit: float):
        self.timecode = timecode
        self.field = field
        self.value = value
        self.limit = limit
        super().__init__(
            f"Invalid {field} value {value} in timecode {timecode!r} (must be below {limit:g})"
        )
