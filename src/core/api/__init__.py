from src.core.api.base import BaseAPIClient, APIError, APITransportError
from src.core.api.firebase import FirebaseAuthClient, FirestoreClient

__all__ = [
    "BaseAPIClient",
    "APIError",
    "APITransportError",
    "FirebaseAuthClient",
    "FirestoreClient",
]
