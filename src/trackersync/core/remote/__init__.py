"""
Remote store protocol and adapters.

The orchestrator talks to any object satisfying RemoteStore;
GitHubContentsStore is the production adapter.

Example:
    >>> from trackersync.core.remote import GitHubContentsStore
    >>> store = GitHubContentsStore("acme", "books", token)
    >>> store.file_identity
    'acme/books:data.json'
"""

from trackersync.core.remote.github import GitHubContentsStore, classify_http_error
from trackersync.core.remote.protocol import RemoteDocument, RemoteStore, WriteResult
from trackersync.core.remote.retry import RetryPolicy, is_retryable_error, retry_async

__all__ = [
    "GitHubContentsStore",
    "RemoteDocument",
    "RemoteStore",
    "RetryPolicy",
    "WriteResult",
    "classify_http_error",
    "is_retryable_error",
    "retry_async",
]
