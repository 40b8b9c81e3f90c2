# nowcapital/errors.py
from __future__ import annotations
from typing import Optional


class ConnectorError(Exception):
    """Base class for everything the connector raises on purpose."""


class MissingParameterError(ConnectorError):
    def __init__(self, name: str, item_index: Optional[int] = None):
        self.name = name
        self.item_index = item_index
        where = f" (item {item_index})" if item_index is not None else ""
        super().__init__(f"Missing required parameter '{name}'{where}")


class RemoteServiceError(ConnectorError):
    """
    Network or HTTP failure talking to the calculation service.
    status_code is None when the request never got a response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class OperationError(ConnectorError):
    def __init__(self, message: str, item_index: int):
        self.item_index = item_index
        super().__init__(message)
