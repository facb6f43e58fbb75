"""레포지토리 예외 클래스 모듈.

Repository exception classes module.
Provides the error taxonomy shared by every repository operation so callers
can tell a missing record apart from a store failure or a bad option,
regardless of which database dialect produced the underlying error.

Usage:
    from dryrepo.utils.exceptions import NotFoundError, PersistenceError
    raise NotFoundError("User not found")
"""


class RepositoryError(Exception):
    """레포지토리 예외의 공통 부모 클래스.

    Base class for all repository errors.

    Args:
        detail: 오류 메시지 (Error message)
    """

    default_detail: str = "Repository error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail: str = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(RepositoryError):
    """조건에 맞는 레코드가 없을 때 사용.

    Raised when no stored record satisfies the query predicate.
    `get` and `delete` hand this error to the not-found mapping function
    when suppression is enabled.

    Args:
        detail: 오류 메시지 (Error message, default: "Record not found")
    """

    default_detail = "Record not found"


class PersistenceError(RepositoryError):
    """저장소 실패 — 연결 오류, 제약 조건 위반, 직렬화 충돌.

    Backing-store failure: connectivity, constraint violation or
    serialization conflict. The original driver error is chained as
    ``__cause__``.

    Args:
        detail: 오류 메시지 (Error message, default: "Persistence failure")
    """

    default_detail = "Persistence failure"


class ConfigurationError(RepositoryError):
    """잘못된 옵션 또는 조건 구성.

    Invalid option or predicate construction (e.g. missing not-found mapping
    function, zero page size, unknown field name). Raised immediately.

    Args:
        detail: 오류 메시지 (Error message, default: "Invalid configuration")
    """

    default_detail = "Invalid configuration"
