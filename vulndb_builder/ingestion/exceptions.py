"""
Exceptions raised by vulnerability sources.

Exception hierarchy:
- VulnSrcError (base)
  ├── WalkError (cache directory missing or unreadable)
  ├── DecodeError (raw file is not valid vendor JSON)
  ├── SaveError (a write stage failed inside the commit transaction)
  ├── UpdateError (a whole walk + commit run failed)
  └── QueryError (advisory lookup failed)

Each error message is the wrapped error's message prefixed with one line of
stage context, so str(err) reads like "error in amazon walk: error in file
walk: ...".
"""


class VulnSrcError(Exception):
    """Base exception for all vulnerability source operations"""

    def __init__(self, message: str, source_name: str = None):
        self.source_name = source_name
        super().__init__(message)


class WalkError(VulnSrcError):
    """Raised when the raw feed directory cannot be walked"""


class DecodeError(VulnSrcError):
    """Raised when a raw feed file cannot be decoded"""


class SaveError(VulnSrcError):
    """Raised when a commit stage (advisory, vulnerability detail, severity) fails"""

    def __init__(self, message: str, stage: str, source_name: str = None):
        self.stage = stage
        super().__init__(message, source_name)


class UpdateError(VulnSrcError):
    """Raised when a source update fails to save"""


class QueryError(VulnSrcError):
    """Raised when advisories cannot be read back"""
