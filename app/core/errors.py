from fastapi import status


class GameError(Exception):
    """Бизнес-ошибка сервиса; в HTTP её переводит обработчик в app.main."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(GameError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(GameError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(GameError):
    status_code = status.HTTP_409_CONFLICT
