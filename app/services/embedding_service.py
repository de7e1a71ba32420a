"""
Embedding service using Azure OpenAI.
"""
import logging
import os
from typing import List, Optional

import openai
import tiktoken
from openai import AzureOpenAI

from app.core.errors import ConfigurationError, EmbeddingError
from app.core.settings import embedding_deployment, provider_timeout

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 1536
MAX_EMBEDDING_TOKENS = 8192


class EmbeddingService:
    """Service for generating embeddings using Azure OpenAI."""

    def __init__(self):
        self.aoai_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        self.aoai_api_key = os.getenv("AZURE_OPENAI_API_KEY")
        self.aoai_api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")
        self.aoai_embed_deployment = embedding_deployment()
        self.timeout = provider_timeout()

        if not self.aoai_endpoint or not self.aoai_api_key:
            raise ConfigurationError(
                "Azure OpenAI credentials not found. "
                "Please set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY in .env"
            )

        self._embedding_client: Optional[AzureOpenAI] = None
        self._encoding = None

    def _get_embedding_client(self) -> AzureOpenAI:
        """Get or create Azure OpenAI embedding client."""
        if self._embedding_client is None:
            self._embedding_client = AzureOpenAI(
                api_key=self.aoai_api_key,
                api_version=self.aoai_api_version,
                azure_endpoint=self.aoai_endpoint,
                timeout=self.timeout,
            )
        return self._embedding_client

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a batch of texts.

        Args:
            texts: Non-empty strings to embed

        Returns:
            One vector per input text, in input order
        """
        if not texts or any(not isinstance(t, str) or not t for t in texts):
            raise EmbeddingError("All inputs must be non-empty strings")

        client = self._get_embedding_client()
        try:
            response = client.embeddings.create(
                input=texts,
                model=self.aoai_embed_deployment
            )
        except openai.OpenAIError as e:
            logger.error(f"Azure OpenAI embeddings call failed: {e}", exc_info=True)
            raise EmbeddingError(f"Failed to generate embeddings: {e}") from e

        # The API tags each vector with its input index
        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, received {len(data)}")

        logger.info(f"Generated {len(data)} embeddings (usage: {response.usage})")
        return [item.embedding for item in data]

    def count_tokens(self, text: str) -> int:
        """Count tokens the embedding model will see for `text`."""
        if self._encoding is None:
            try:
                self._encoding = tiktoken.encoding_for_model(self.aoai_embed_deployment)
            except KeyError:
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return len(self._encoding.encode(text))

    def embed_in_batches(self, texts: List[str], max_tokens: int = MAX_EMBEDDING_TOKENS) -> List[List[float]]:
        """Embed many texts with each request kept under `max_tokens`, preserving order."""
        embeddings: List[List[float]] = []
        batch: List[str] = []
        batch_tokens = 0

        for text in texts:
            tokens = self.count_tokens(text)
            if batch and batch_tokens + tokens > max_tokens:
                embeddings.extend(self.embed(batch))
                batch, batch_tokens = [], 0
            batch.append(text)
            batch_tokens += tokens

        if batch:
            embeddings.extend(self.embed(batch))

        return embeddings
