import enum
import logging

logger = logging.getLogger(__name__)


class ErrorCode(enum.IntEnum):
    """
    Codes for the errors that can be raised while reconciling a resource.
    """

    INVALID_DEPLOYMENT_CREATE_REQUEST = 1
    INVALID_DEPLOYMENT_UPDATE_REQUEST = 2
    INVALID_SERVICE_CREATE_REQUEST = 3
    INVALID_SERVICE_UPDATE_REQUEST = 4
    INVALID_PVC_CREATE_REQUEST = 5
    INVALID_PVC_UPDATE_REQUEST = 6
    INVALID_CONFIG_MAP_CREATE_REQUEST = 7
    INVALID_CONFIG_MAP_UPDATE_REQUEST = 8
    INVALID_SERVICE_ACCOUNT_CREATE_REQUEST = 9
    INVALID_SERVICE_ACCOUNT_UPDATE_REQUEST = 10
    INVALID_ROLE_CREATE_REQUEST = 11
    INVALID_ROLE_UPDATE_REQUEST = 12
    INVALID_ROLE_BINDING_CREATE_REQUEST = 13
    INVALID_ROLE_BINDING_UPDATE_REQUEST = 14
    INVALID_PEER_INIT_SPEC = 15
    INVALID_ORDERER_TYPE = 16
    INVALID_ORDERER_NODE_CREATE_REQUEST = 17
    INVALID_ORDERER_NODE_UPDATE_REQUEST = 18
    INVALID_ORDERER_INIT_SPEC = 19
    CA_INITIALIZATION_FAILED = 20
    ORDERER_INITIALIZATION_FAILED = 21
    PEER_INITIALIZATION_FAILED = 22
    MIGRATION_FAILED = 23
    FABRIC_PEER_MIGRATION_FAILED = 24
    FABRIC_ORDERER_MIGRATION_FAILED = 25
    INVALID_CUSTOM_RESOURCE_CREATE_REQUEST = 26
    FABRIC_CA_MIGRATION_FAILED = 27


#: Errors for which retrying the reconciliation is futile until the user intervenes
BREAKING_ERRORS = frozenset(
    code
    for code in ErrorCode
    if code not in {
        ErrorCode.INVALID_ORDERER_NODE_CREATE_REQUEST,
        ErrorCode.INVALID_ORDERER_NODE_UPDATE_REQUEST,
        ErrorCode.MIGRATION_FAILED,
        ErrorCode.FABRIC_CA_MIGRATION_FAILED,
    }
)


class OperatorError(Exception):
    """
    Raised when reconciliation fails in a way that can be reported to the user.
    """
    def __init__(self, code, message):
        super().__init__(code, message)
        self.code = ErrorCode(code)
        self.message = message

    def __str__(self):
        return f"Code: {self.code.value} - {self.message}"

    @classmethod
    def wrap(cls, exc, code, message):
        """
        Returns an operator error with the given code whose message includes the
        message of the given exception.
        """
        error = cls(code, f"{message}: {exc}")
        error.__cause__ = exc
        return error

    @property
    def breaking(self):
        return self.code in BREAKING_ERRORS


def find_operator_error(exc):
    """
    Returns the first operator error in the chain of causes for the given exception,
    or None if there is no operator error in the chain.
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, OperatorError):
            return exc
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return None


def get_error_code(exc):
    """
    Returns the operator error code for the exception, or zero if there isn't one.
    """
    operator_error = find_operator_error(exc)
    return operator_error.code.value if operator_error else 0


def is_breaking(exc):
    """
    Returns true if the exception is an operator error that should stop retries.
    """
    operator_error = find_operator_error(exc)
    return operator_error is not None and operator_error.breaking


def route_error(exc, message):
    """
    Decides what to do with an error raised during reconciliation.

    Breaking errors are logged and None is returned to indicate that the error has
    been handled. Any other error is returned so that the caller can raise it.
    """
    if is_breaking(exc):
        logger.error("Breaking Error: %s - %s", message, exc)
        return None
    return exc
