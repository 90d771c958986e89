from fastapi import status


class DomainError(Exception):
    """Base class for errors mapped to a ``{message}`` body at the API boundary"""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class SaleUnitNotInLineItemError(NotFoundError):
    def __init__(self, sale_unit_id: int, list_item_id: int):
        super().__init__("Sale unit not found in the list item")
        self.sale_unit_id = sale_unit_id
        self.list_item_id = list_item_id
