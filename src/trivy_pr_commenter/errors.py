from __future__ import annotations


class CommenterError(Exception):
    """Base class for every error the commenter reports."""


class ConfigMissing(CommenterError):
    pass


class NotAPullRequest(CommenterError):
    pass


class ReportError(CommenterError):
    pass


class ReportNotFound(ReportError):
    pass


class ReportMalformed(ReportError):
    pass
