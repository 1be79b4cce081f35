from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
  conflict = "conflict"
  unauthorized = "unauthorized"
  forbidden = "forbidden"
  not_found = "not_found"
  validation = "validation_error"
  internal = "internal"


STATUS_BY_KIND: dict[ErrorKind, int] = {
  ErrorKind.conflict: 409,
  ErrorKind.unauthorized: 401,
  ErrorKind.forbidden: 403,
  ErrorKind.not_found: 404,
  ErrorKind.validation: 422,
  ErrorKind.internal: 500,
}


class ServiceError(Exception):
  """
  Failure surfaced by a service call.

  Messages are stable, caller-facing strings. They must never embed a secret
  value or a token.
  """

  kind: ErrorKind = ErrorKind.internal

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message

  @property
  def status_code(self) -> int:
    return STATUS_BY_KIND[self.kind]


class ConflictError(ServiceError):
  kind = ErrorKind.conflict


class UnauthorizedError(ServiceError):
  kind = ErrorKind.unauthorized


class ForbiddenError(ServiceError):
  kind = ErrorKind.forbidden


class NotFoundError(ServiceError):
  kind = ErrorKind.not_found


class ValidationFailedError(ServiceError):
  kind = ErrorKind.validation


class InternalError(ServiceError):
  kind = ErrorKind.internal
