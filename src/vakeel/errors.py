"""Error taxonomy shared by the store, services and API layer.

There is no upstream AI error type: the gateway turns such failures into
localized fallback text.
"""

from __future__ import annotations


class VakeelError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class MissingFieldError(VakeelError, ValueError):
    status_code = 400

    def __init__(self, *fields: str, message: str | None = None) -> None:
        self.fields = list(fields)
        if message is None:
            if len(fields) == 1:
                message = f"{fields[0]} is required"
            elif len(fields) == 2:
                message = f"{fields[0]} and {fields[1]} are required"
            else:
                message = ", ".join(fields[:-1]) + f", and {fields[-1]} are required"
        super().__init__(message)


class EmptyPatchError(MissingFieldError):
    def __init__(self) -> None:
        super().__init__(message="No fields to update")


class NotFoundError(VakeelError, KeyError):
    status_code = 404

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found")


class InvalidTransitionError(VakeelError):
    status_code = 409


class StoreUnavailableError(VakeelError, RuntimeError):
    status_code = 503
