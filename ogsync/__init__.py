__version__ = "0.1.0"

from .chainsync.point import ORIGIN, Point, PointString, PointStruct
from .client import Client
from .errors import (
    CompatibilityError,
    DecodeError,
    OgmiosError,
    QueryError,
    SessionError,
    UnsupportedEraError,
)
from .session import Session
from .store import FileStore, NopStore, Store
