from .credentials import CredentialStore, IntermediaryTokenFetcher, RemoteCredential
from .spotify import RemoteClient
from .transport import HttpResponse, UrllibTransport

__all__ = [
    "CredentialStore",
    "HttpResponse",
    "IntermediaryTokenFetcher",
    "RemoteClient",
    "RemoteCredential",
    "UrllibTransport",
]
