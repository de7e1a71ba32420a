"""
Environment-driven provider settings shared by the Azure clients.
"""
import os

DEFAULT_SEARCH_INDEX_NAME = "hoa-bylaws-index"


def provider_timeout() -> float:
    """Timeout in seconds applied to every provider call."""
    return float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))


def search_index_name() -> str:
    """Name of the bylaws search index."""
    return os.getenv("AZURE_SEARCH_INDEX_NAME", DEFAULT_SEARCH_INDEX_NAME)


def embedding_deployment() -> str:
    """Azure OpenAI embedding deployment name."""
    return os.getenv("AZURE_EMBEDDING_DEPLOYMENT_NAME", "text-embedding-ada-002")
