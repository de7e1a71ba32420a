"""
Azure AI Search client for the bylaws index.
"""
import os
from typing import Optional

from azure.core.credentials import AzureKeyCredential
from azure.search.documents import SearchClient

from app.core.errors import ConfigurationError
from app.core.settings import provider_timeout, search_index_name


class SearchClientManager:
    """Manages Azure AI Search client connection."""

    def __init__(self):
        self.endpoint: Optional[str] = None
        self.api_key: Optional[str] = None
        self.index_name: Optional[str] = None
        self.credential: Optional[AzureKeyCredential] = None
        self.client: Optional[SearchClient] = None
        self._initialized = False

    def _initialize(self):
        """Lazy initialization - only called when client is actually needed."""
        if self._initialized:
            return

        self.endpoint = os.getenv("AZURE_SEARCH_ENDPOINT")
        self.api_key = os.getenv("AZURE_SEARCH_KEY")
        self.index_name = search_index_name()

        if not self.endpoint or not self.api_key:
            raise ConfigurationError(
                "Missing Azure Search configuration. "
                "Please set AZURE_SEARCH_ENDPOINT and AZURE_SEARCH_KEY environment variables."
            )

        self.credential = AzureKeyCredential(self.api_key)
        self._initialized = True

    def is_configured(self) -> bool:
        """Whether search credentials are present, without creating a client."""
        return bool(os.getenv("AZURE_SEARCH_ENDPOINT") and os.getenv("AZURE_SEARCH_KEY"))

    def get_client(self) -> SearchClient:
        """Get or create Azure AI Search client."""
        self._initialize()

        if self.client is None:
            timeout = provider_timeout()
            self.client = SearchClient(
                endpoint=self.endpoint,
                index_name=self.index_name,
                credential=self.credential,
                connection_timeout=timeout,
                read_timeout=timeout,
            )
        return self.client

    def close(self):
        """Close the search client connection."""
        if self.client:
            self.client.close()
            self.client = None


search_client_manager = SearchClientManager()
