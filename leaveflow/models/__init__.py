# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import enums, request

# Explicit class exports for cleaner imports
from .request import ApprovalRequest, RequestTransaction

__all__ = [
    "ApprovalRequest",
    "RequestTransaction",
]
