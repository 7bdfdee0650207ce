# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The handlers only raise these exceptions, they are caught in the http_method_decorator
# of the flask binding and formatted, for example:
# {
#      "title": "Not Found: ",
#      "detail": "Not Found: ",
#      "code": "404"
# }
#
from http import HTTPStatus
from werkzeug.exceptions import NotFound
import modelhandler
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class HandlerError(Exception):
    """
    Base class of the errors raised by the handlers
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""


class NotFoundError(HandlerError, NotFound):
    """
    This exception is raised when the requested record does not exist
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "Not Found: "

    def __init__(self, message="", status_code=HTTPStatus.NOT_FOUND.value):
        """
        :param message: Message to be returned in the (json) body
        :param status_code: HTTP Status code
        """
        HandlerError.__init__(self, message)
        self.response = None
        self.status_code = status_code
        modelhandler.log.info("Not found: %s", message)
        if is_debug():
            self.message += message
        else:
            self.message += HIDDEN_LOG


class ValidationError(HandlerError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    message = "Validation Error: "

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        HandlerError.__init__(self, message)
        self.status_code = status_code
        modelhandler.log.warning("ValidationError: %s", message)
        self.message += message


class MalformedQueryError(ValidationError):
    """
    An include= name doesn't resolve to a relation, or a request parameter can't be parsed
    """

    message = "Malformed Query: "


class StoreError(HandlerError):
    """
    Raised by the repository adapters when the data store fails,
    the original exception is kept as __cause__
    """

    message = "Store Error: "

    def __init__(self, message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        HandlerError.__init__(self, message)
        self.status_code = status_code
        modelhandler.log.error("Store Error: %s", message)
        if is_debug():
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG


class AssociationWriteError(HandlerError):
    """
    One of the association writes of a create or update request failed
    """

    message = "Association Error: "

    def __init__(self, relation_name, cause):
        """
        :param relation_name: name of the relation that couldn't be set
        :param cause: exception raised by the association write
        """
        HandlerError.__init__(self, relation_name, cause)
        self.relation_name = relation_name
        self.cause = cause
        self.status_code = getattr(cause, "status_code", HTTPStatus.INTERNAL_SERVER_ERROR.value)
        modelhandler.log.error(f"Failed to set {relation_name}: {cause}")
        if is_debug() or isinstance(cause, ValidationError):
            self.message += f"{relation_name}: {getattr(cause, 'message', None) or cause}"
        else:
            self.message += HIDDEN_LOG
