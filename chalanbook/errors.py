"""Error taxonomy shared by the services and the HTTP layer.

Each error carries the HTTP status it maps to; ``code`` is the class name and
is what API clients should branch on.
"""


class ChalanBookError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def code(self):
        return type(self).__name__

    def to_dict(self):
        return {"detail": self.message, "code": self.code}


class DuplicateUsername(ChalanBookError):
    status_code = 400
    message = "Username already exists"


class RootConflict(ChalanBookError):
    status_code = 400
    message = "Root user already exists"


class InvalidCredentials(ChalanBookError):
    status_code = 400
    message = "Invalid username or password"


class MissingToken(ChalanBookError):
    status_code = 401
    message = "Not authenticated"


class InvalidToken(ChalanBookError):
    status_code = 403
    message = "Invalid or expired token"


class Forbidden(ChalanBookError):
    status_code = 403
    message = "Operation not permitted for this role"


class NotFound(ChalanBookError):
    status_code = 404
    message = "Not found"


class ServerError(ChalanBookError):
    pass


class CascadeFailed(ServerError):
    message = "Cascade delete failed"

    def __init__(self, report, message=None):
        super().__init__(message)
        self.report = report

    def to_dict(self):
        out = super().to_dict()
        out["report"] = self.report.model_dump(by_alias=True)
        return out
