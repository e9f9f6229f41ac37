"""
Service Exceptions

Domain errors raised by the managers. Each carries the HTTP status the API
layer answers with.
"""


class ReportServiceError(Exception):
    """Base class for report service errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(ReportServiceError):
    """No caller identity, or the caller does not own the resource"""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(ReportServiceError):
    """Referenced report or attachment does not exist"""

    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource.capitalize()} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class HasAttachments(ReportServiceError):
    """Report deletion blocked by existing attachments"""

    status_code = 409

    def __init__(self, report_id: str, count: int):
        super().__init__(f"Report {report_id} has {count} attachment(s)")
        self.report_id = report_id
        self.count = count


class UploadFailed(ReportServiceError):
    """Blob store rejected a write"""

    status_code = 502


class DownloadFailed(ReportServiceError):
    """Attachment binary could not be fetched during export"""

    status_code = 502


class InvalidAttachment(ReportServiceError, ValueError):
    """Attachment input rejected before anything is stored"""

    status_code = 400


class ProfileConflict(ReportServiceError):
    """Signed-in profile collides with another user's unique email or username"""

    status_code = 409
