"""REST API access."""
from caseflow.api.client import ApiClient
from caseflow.api.credentials import CredentialStore, FileCredentialStore, InMemoryCredentialStore
from caseflow.api.pagination import CollectionLoader, PaginationController

__all__ = [
    "ApiClient",
    "CollectionLoader",
    "CredentialStore",
    "FileCredentialStore",
    "InMemoryCredentialStore",
    "PaginationController",
]
