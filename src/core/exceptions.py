"""
커스텀 예외 클래스

FreightDeskError
├── ValidationError        입력값 검증 (배치에서는 건너뜀)
├── NotFoundError          변경 요청/배수/존/요금 없음
├── InvalidStateError      이미 종료된 변경 요청
├── ConfigurationError     환경변수/설정 누락
├── ConsistencyError       승인 후 반영 실패 + 롤백 실패
└── ExternalCallError      외부 호출 (HTTP 상태 포함)
    ├── ShopifyError       GraphQL errors / userErrors
    ├── SupabaseError      테이블 작업 실패
    └── ExternalTimeoutError
"""

from typing import Optional, Dict, Any, List


class ErrorCodes:
    """에러 코드 상수"""

    UNKNOWN = "FRD_UNKNOWN"
    VALIDATION = "FRD_VALIDATION"
    CONFIG = "FRD_CONFIG"
    NOT_FOUND = "FRD_NOT_FOUND"

    INVALID_STATE = "FRD_INVALID_STATE"
    DUPLICATE_PROPOSAL = "FRD_DUPLICATE_PROPOSAL"
    CONSISTENCY = "FRD_CONSISTENCY"

    EXTERNAL = "FRD_EXTERNAL"
    SHOPIFY = "FRD_SHOPIFY"
    SUPABASE = "FRD_SUPABASE"
    TIMEOUT = "FRD_TIMEOUT"


class FreightDeskError(Exception):
    """기본 예외 클래스

    하위 클래스는 default_code만 바꾸고, 자기 필드를 details에 합쳐 올린다.
    """

    default_code = ErrorCodes.UNKNOWN

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": type(self).__name__,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(FreightDeskError):
    """입력값 검증 오류"""

    default_code = ErrorCodes.VALIDATION

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        self.field = field
        self.value = value
        details = kwargs.pop("details", {})
        details.update(field=field, value=str(value)[:100])
        super().__init__(message, details=details, **kwargs)


class NotFoundError(FreightDeskError):
    """참조한 엔티티가 없음"""

    default_code = ErrorCodes.NOT_FOUND

    def __init__(self, message: str, entity: str = None, entity_id: str = None, **kwargs):
        self.entity = entity
        self.entity_id = entity_id
        details = kwargs.pop("details", {})
        details.update(entity=entity, entity_id=entity_id)
        super().__init__(message, details=details, **kwargs)


class InvalidStateError(FreightDeskError):
    """승인/반려된 변경 요청에 대한 상태 전이 시도"""

    default_code = ErrorCodes.INVALID_STATE

    def __init__(self, message: str, current_status: str = None, **kwargs):
        self.current_status = current_status
        details = kwargs.pop("details", {})
        details["current_status"] = current_status
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(FreightDeskError):
    default_code = ErrorCodes.CONFIG

    def __init__(self, message: str, config_key: str = None, **kwargs):
        self.config_key = config_key
        details = kwargs.pop("details", {})
        details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)


class ConsistencyError(FreightDeskError):
    """승인 상태로 바뀌었지만 Shopify 반영과 pending 복구가 모두 실패"""

    default_code = ErrorCodes.CONSISTENCY

    def __init__(self, message: str, change_id: str = None, rollback_error: Exception = None, **kwargs):
        self.change_id = change_id
        self.rollback_error = rollback_error
        details = kwargs.pop("details", {})
        details.update(change_id=change_id, rollback_error=str(rollback_error) if rollback_error else None)
        super().__init__(message, details=details, **kwargs)


class ExternalCallError(FreightDeskError):
    """외부 호출 오류 (배치에서는 항목 단위 실패, 401/403은 중단)"""

    default_code = ErrorCodes.EXTERNAL

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: str = None,
        endpoint: str = None,
        **kwargs
    ):
        self.status_code = status_code
        self.response_body = response_body
        self.endpoint = endpoint
        details = kwargs.pop("details", {})
        details.update(status_code=status_code, endpoint=endpoint)
        super().__init__(message, details=details, **kwargs)


class ShopifyError(ExternalCallError):
    default_code = ErrorCodes.SHOPIFY

    def __init__(self, message: str, user_errors: List[Dict[str, Any]] = None, **kwargs):
        self.user_errors = user_errors or []
        details = kwargs.pop("details", {})
        details["user_errors"] = self.user_errors
        super().__init__(message, details=details, **kwargs)


class SupabaseError(ExternalCallError):
    default_code = ErrorCodes.SUPABASE

    def __init__(self, message: str, table: str = None, operation: str = None, **kwargs):
        self.table = table
        self.operation = operation
        details = kwargs.pop("details", {})
        details.update(table=table, operation=operation)
        super().__init__(message, details=details, **kwargs)


class ExternalTimeoutError(ExternalCallError):
    default_code = ErrorCodes.TIMEOUT

    def __init__(self, message: str, timeout_seconds: float = None, **kwargs):
        self.timeout_seconds = timeout_seconds
        details = kwargs.pop("details", {})
        details["timeout_seconds"] = timeout_seconds
        super().__init__(message, details=details, **kwargs)
