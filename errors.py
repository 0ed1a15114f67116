"""Failures that abort a post submission.

Every error here is terminal: nothing in the attachment pipeline retries, and
``app.main`` turns any ``PostError`` into a non-zero exit without publishing.
Errors raised while handling a file carry its path in the message.
"""


class PostError(Exception):
    """Base class for everything that stops a post from being published."""


class FileReadError(PostError):
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"failed to read file {path}: {reason}")


class SizeExceeded(PostError, ValueError):
    def __init__(self, kind, path, size, limit):
        self.kind = kind
        self.path = path
        self.size = size
        self.limit = limit
        super().__init__(
            f"{kind} {path} exceeds maximum size of {limit} bytes (got {size} bytes)"
        )


class UnsupportedFormat(PostError, ValueError):
    def __init__(self, kind, path, supported=""):
        self.kind = kind
        self.path = path
        message = f"unsupported {kind} format for file {path}"
        if supported:
            message += f" (supported: {supported})"
        super().__init__(message)


class TooManyAttachments(PostError, ValueError):
    def __init__(self, kind, count, limit):
        self.kind = kind
        self.count = count
        self.limit = limit
        super().__init__(f"maximum {limit} {kind}s allowed per post, got {count}")


def _job_label(job_id, path):
    if path:
        return f"{path} (job {job_id})"
    return f"job {job_id}"


class ProcessingFailed(PostError):
    """The video service reported that transcoding failed."""

    def __init__(self, job_id, reason, path=None):
        self.job_id = job_id
        self.reason = reason
        self.path = path
        super().__init__(
            f"video processing failed for {_job_label(job_id, path)}: {reason}"
        )

    def for_path(self, path):
        return type(self)(self.job_id, self.reason, path=path)


class ProcessingTimedOut(PostError):
    def __init__(self, job_id, waited, path=None):
        self.job_id = job_id
        self.waited = waited
        self.path = path
        super().__init__(
            f"video processing for {_job_label(job_id, path)} timed out after {waited:.0f}s"
        )

    def for_path(self, path):
        return type(self)(self.job_id, self.waited, path=path)


class InvalidResponse(PostError):
    """An endpoint answered 2xx with a payload that does not match its lexicon."""

    def __init__(self, action, reason):
        self.action = action
        self.reason = reason
        super().__init__(f"unexpected response to {action}: {reason}")


class InvalidRecord(PostError, ValueError):
    def __init__(self, reason):
        self.reason = reason
        super().__init__(f"invalid post record: {reason}")


class RequestFailed(PostError):
    """An XRPC endpoint answered with a non-success status.

    ``path`` names the file being sent, when there is one.
    """

    def __init__(self, action, status_code, body="", path=None):
        self.action = action
        self.status_code = status_code
        self.body = body
        self.path = path
        target = f" {path}" if path else ""
        super().__init__(
            f"failed to {action}{target}, status code: {status_code}, body: {body[:500]}"
        )

    def for_path(self, path):
        return type(self)(self.action, self.status_code, self.body, path=path)


class UploadRejected(RequestFailed):
    pass


class SessionFailed(RequestFailed):
    pass


class PublishFailed(RequestFailed):
    pass
