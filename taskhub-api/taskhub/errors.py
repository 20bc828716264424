class ApiError(Exception):
    """ Base class for errors that are rendered as JSON {"msg": ...} responses """
    status_code = 500
    retryable = False
    default_msg = 'internal server error'

    def __init__(self, msg: str = None):
        super().__init__(msg)
        self.msg = msg or self.default_msg

    def to_dict(self) -> dict:
        body = {'msg': self.msg}
        if self.retryable:
            body['retryable'] = True
        return body


class ValidationError(ApiError):
    status_code = 400
    default_msg = 'invalid request'


class UnauthorizedError(ApiError):
    status_code = 401
    default_msg = 'unauthorized'


class ForbiddenError(ApiError):
    status_code = 403
    default_msg = 'you do not have access to this resource'


class NotFoundError(ApiError):
    status_code = 404
    default_msg = 'not found'


class ConflictError(ApiError):
    status_code = 409
    default_msg = 'conflict'


class QueueUnavailableError(ApiError):
    # the report queue could not be reached, the client may retry the same request
    status_code = 503
    retryable = True
    default_msg = 'report queue unavailable, please retry later'
