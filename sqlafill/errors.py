# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The exceptions will be caught in http_method_decorator and formatted, for example:
# {
#      "title": "Validation Failed",
#      "detail": "Validation Failed: ",
#      "code": 422,
#      "meta": {"email": "must not be blank"}
# }
#
import traceback
from flask import has_request_context, request
from werkzeug.exceptions import NotFound
import sqlafill
from sqlalchemy.exc import DontWrapMixin
from http import HTTPStatus
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class ApiError(Exception, DontWrapMixin):
    """
    Base class of the errors that are turned into an http response
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    title = HTTPStatus.INTERNAL_SERVER_ERROR.phrase
    message = ""

    def __str__(self):
        return self.message


class NotFoundError(ApiError, NotFound):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    title = HTTPStatus.NOT_FOUND.phrase
    message = "NotFoundError "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        ApiError.__init__(self)
        self.status_code = status_code
        sqlafill.log.error("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class GenericError(ApiError):
    """
    This exception is raised when an error has been detected
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value  # 500
    message = "Generic Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        Exception.__init__(self)
        self.status_code = status_code
        sqlafill.log.error("Generic Error: %s", message)
        if is_debug():
            if has_request_context():
                sqlafill.log.info(f"Error in {request.url}")
            sqlafill.log.debug(traceback.format_exc(120))
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG


class UnknownEntityError(GenericError):
    """
    This exception is raised when no schema has been registered for an entity type
    """

    message = "Unknown Entity: "


class InvalidPayloadError(ApiError):
    """
    This exception is raised when the payload can't be mapped onto an entity (client side input),
    e.g. a required identifier is missing or a relationship has the wrong shape.
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    title = HTTPStatus.BAD_REQUEST.phrase
    message = "Invalid Payload: "

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        Exception.__init__(self)
        self.status_code = status_code
        sqlafill.log.warning("InvalidPayloadError: %s", message)
        self.message += message


class ValidationFailedError(ApiError):
    """
    This exception is raised when a filled entity graph violates its constraints
    `errors` holds the error tree, it is always sent back to the client
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    title = "Validation Failed"
    message = "Validation Failed"

    def __init__(self, errors, status_code=HTTPStatus.UNPROCESSABLE_ENTITY.value):
        Exception.__init__(self)
        self.status_code = status_code
        self.errors = errors
        sqlafill.log.warning("ValidationFailedError: %s", errors)
