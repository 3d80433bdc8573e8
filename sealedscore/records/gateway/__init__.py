from .http_client import HTTPRecordGateway
from .interface import RecordGateway
from .local import LocalRecordGateway

__all__ = ["HTTPRecordGateway", "LocalRecordGateway", "RecordGateway"]
