from fastapi import HTTPException


class DomainError(Exception):
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(DomainError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(DomainError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(DomainError):
    status_code = 409
    code = "INVALID_STATE"


class InsufficientStockError(DomainError):
    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, part_name: str, on_hand: int, requested: int):
        super().__init__(
            f"Estoque insuficiente de {part_name}: disponível {on_hand}, solicitado {requested}"
        )
        self.on_hand = on_hand
        self.requested = requested


class UnauthorizedError(DomainError):
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(DomainError):
    status_code = 409
    code = "CONFLICT"


def _auth_401(code: str, message: str) -> HTTPException:
    # WWW-Authenticate mantém o fluxo Bearer do Swagger
    return HTTPException(
        status_code=401,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )
