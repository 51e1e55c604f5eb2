from .error_codes import ErrorCode, get_status_code
from .responses import ErrorBody, ErrorDetail, MessageResponse

__all__ = [
    "ErrorBody",
    "ErrorCode",
    "ErrorDetail",
    "MessageResponse",
    "get_status_code",
]
