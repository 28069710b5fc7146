from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_CALL = "INVALID_CALL"
    RATE_LIMITED = "RATE_LIMITED"
    ACCESS_DENIED = "ACCESS_DENIED"
    SKILL_ERROR = "SKILL_ERROR"
    INVALID_CHAIN = "INVALID_CHAIN"


class SkillProtocolError(Exception):
    """Base error for every failure the dispatcher reports to a caller."""

    code: ErrorCode = ErrorCode.SKILL_ERROR
    status_code: int = 500

    def __init__(self, message: str, *, skill: str | None = None, step: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.skill = skill
        self.step = step


class InvalidCallError(SkillProtocolError):
    code = ErrorCode.INVALID_CALL
    status_code = 400


class UnknownSkillError(InvalidCallError):
    status_code = 404


class InvalidChainError(SkillProtocolError):
    code = ErrorCode.INVALID_CHAIN
    status_code = 400


class RateLimitedError(SkillProtocolError):
    code = ErrorCode.RATE_LIMITED
    status_code = 429


class AccessDeniedError(SkillProtocolError):
    code = ErrorCode.ACCESS_DENIED
    status_code = 403


class SkillExecutionError(SkillProtocolError):
    code = ErrorCode.SKILL_ERROR
    status_code = 500


STATUS_BY_CODE: dict[str, int] = {
    ErrorCode.INVALID_CALL.value: InvalidCallError.status_code,
    ErrorCode.INVALID_CHAIN.value: InvalidChainError.status_code,
    ErrorCode.RATE_LIMITED.value: RateLimitedError.status_code,
    ErrorCode.ACCESS_DENIED.value: AccessDeniedError.status_code,
    ErrorCode.SKILL_ERROR.value: SkillExecutionError.status_code,
}
