"""
Error taxonomy for vectorchat.

Every error carries a machine-readable code, an HTTP status code and a small
metadata dict so the API layers can render it without knowing the subclass.

Propagation:
- Processing-stage errors (classification, reformulation) are fatal and are
  surfaced to callers wrapped in QueryProcessingError.
- Retrieval-stage errors (repository, embeddings) are caught by the search
  orchestrator and turned into a degraded answer.
"""

from typing import Any, Dict, Optional


class VectorChatError(Exception):
    """Base class for all vectorchat errors"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "metadata": self.metadata,
        }


class ValidationError(VectorChatError):
    """Malformed input: missing text or vector, empty collections of ids, etc."""

    def __init__(self, field: str, value: Any, requirement: str):
        super().__init__(
            f"Validation failed for {field}: {requirement}",
            "VALIDATION_ERROR",
            400,
            {"field": field, "value": type(value).__name__, "requirement": requirement},
        )
        self.field = field


class CollectionNotFoundError(VectorChatError):
    def __init__(self, collection: str):
        super().__init__(
            f"Collection '{collection}' does not exist",
            "COLLECTION_NOT_FOUND",
            404,
            {"collection": collection},
        )
        self.collection = collection


class VectorConnectionError(VectorChatError):
    """Network failure or timeout talking to the vector store"""

    def __init__(
        self,
        original_error: BaseException,
        operation: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        operation_text = f" during {operation}" if operation else ""
        endpoint_text = f" at {endpoint}" if endpoint else ""
        super().__init__(
            f"Failed to connect to vector store{endpoint_text}{operation_text}: {original_error}",
            "VECTOR_STORE_CONNECTION_FAILED",
            503,
            {
                "endpoint": endpoint,
                "operation": operation,
                "original_error": repr(original_error),
            },
        )


class SearchOperationError(VectorChatError):
    """Any other vector store failure during search"""

    def __init__(
        self,
        original_error: BaseException,
        query: Optional[str] = None,
        collection: Optional[str] = None,
    ):
        super().__init__(
            f"Search operation failed: {original_error}",
            "SEARCH_FAILED",
            500,
            {
                # Truncated for logging
                "query": query[:100] if query else None,
                "collection": collection,
                "original_error": repr(original_error),
            },
        )


class EmbeddingGenerationError(VectorChatError):
    def __init__(self, provider: str, original_error: BaseException, text: Optional[str] = None):
        super().__init__(
            f"Embedding generation failed with {provider}: {original_error}",
            "EMBEDDING_FAILED",
            502,
            {
                "provider": provider,
                "text_length": len(text) if text is not None else None,
                "original_error": repr(original_error),
            },
        )


class ProviderNotConfiguredError(VectorChatError):
    def __init__(self, provider: str, operation: str):
        super().__init__(
            f"Provider '{provider}' is not configured for {operation}. "
            f"Please set the required environment variables.",
            "PROVIDER_NOT_CONFIGURED",
            503,
            {"provider": provider, "operation": operation},
        )


class ConfigurationError(VectorChatError):
    def __init__(self, setting: str, details: Optional[str] = None):
        super().__init__(
            f"Configuration error for {setting}" + (f": {details}" if details else ""),
            "CONFIGURATION_ERROR",
            500,
            {"setting": setting, "details": details},
        )


class QueryProcessingError(VectorChatError):
    """Wraps any failure that prevents a question from being resolved to an intent"""

    def __init__(self, question: str, original_error: Optional[BaseException] = None):
        reason = str(original_error) if original_error else "Invalid query format"
        super().__init__(
            f"Query processing failed: {reason}",
            "QUERY_PROCESSING_FAILED",
            400,
            {
                "question": (question or "")[:100],
                "original_error": repr(original_error) if original_error else None,
            },
        )
        self.original_error = original_error
