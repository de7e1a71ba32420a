"""Answer generation service using Azure OpenAI chat models."""
import logging
import os
from typing import Any, Dict, List, Optional

import openai
from openai import AzureOpenAI
from pydantic import BaseModel

from app.core.errors import ConfigurationError, GenerationError
from app.core.settings import provider_timeout
from app.models.chunk import SearchResult

logger = logging.getLogger(__name__)

DONT_KNOW_PHRASE = "I don't know"


class Completion(BaseModel):
    """Parsed chat completion. `text` is None when the model returned no content."""
    text: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None


def section_label(chunk: SearchResult, position: int) -> str:
    """Label a context chunk by its section identity, or by its position when it has none."""
    if not chunk.section_number:
        return f"Content Chunk {position}"
    prefix = chunk.section_number if chunk.section_number.startswith("Article") else f"Section {chunk.section_number}"
    return f"{prefix} - {chunk.section_title}" if chunk.section_title else prefix


def build_system_prompt(chunks: List[SearchResult]) -> str:
    """Build the grounded system prompt with every retrieved chunk as context."""
    context_sections = "\n\n".join(
        f"[{section_label(chunk, i)}]\n{chunk.content}"
        for i, chunk in enumerate(chunks, 1)
    )

    return f"""# HOA AI Assistant - Bylaws Expert

You are an expert HOA assistant that answers questions based EXCLUSIVELY on the provided HOA bylaws context.

## CRITICAL INSTRUCTIONS:
1. **ONLY use information from the provided bylaws context below**
2. **If the answer is not in the context, respond with "{DONT_KNOW_PHRASE}" or "This information is not available in the bylaws"**
3. **Always cite specific section numbers when referencing bylaws (for example "Section 4.1")**
4. **Provide accurate, helpful responses in a professional tone**
5. **Do not make assumptions or provide general HOA advice not in the bylaws**

## RESPONSE FORMAT:
- Start with a direct answer to the question
- Include relevant section numbers and titles when citing
- Be concise but comprehensive
- If multiple sections apply, mention all relevant ones
- End with a note about consulting the full bylaws document for complete details

## HOA BYLAWS CONTEXT:
{context_sections}

## REMEMBER:
- Base your answer ONLY on the context above
- Cite section numbers when referencing specific rules
- If unsure or information is missing, clearly state "{DONT_KNOW_PHRASE}"
- Be helpful but accurate - do not invent or assume information"""


class AnswerService:
    """Chat completion provider backed by an Azure OpenAI deployment."""

    def __init__(self):
        self.aoai_endpoint = os.getenv("AZURE_HOA_AI_ENDPOINT") or os.getenv("AZURE_OPENAI_ENDPOINT")
        self.aoai_api_key = os.getenv("AZURE_HOA_AI_API_KEY") or os.getenv("AZURE_OPENAI_API_KEY")
        self.aoai_api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")
        self.aoai_deployment = os.getenv("AZURE_HOA_AI_DEPLOYMENT_NAME", "gpt-4o-mini")
        self.timeout = provider_timeout()

        if not self.aoai_endpoint or not self.aoai_api_key:
            raise ConfigurationError(
                "Azure OpenAI configuration missing. "
                "Please set AZURE_HOA_AI_ENDPOINT and AZURE_HOA_AI_API_KEY in .env"
            )

        self._client: Optional[AzureOpenAI] = None

    def _get_client(self) -> AzureOpenAI:
        """Get or create Azure OpenAI client."""
        if self._client is None:
            self._client = AzureOpenAI(
                api_key=self.aoai_api_key,
                api_version=self.aoai_api_version,
                azure_endpoint=self.aoai_endpoint,
                timeout=self.timeout,
            )
        return self._client

    def complete(self, messages: List[Dict[str, str]], max_tokens: int) -> Completion:
        """
        Send a chat conversation to the deployment.

        Args:
            messages: [{"role": ..., "content": ...}] in conversation order
            max_tokens: Upper bound on generated tokens

        Returns:
            Completion with the generated text and token usage
        """
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.aoai_deployment,
                messages=messages,
                max_completion_tokens=max_tokens,
            )
        except openai.OpenAIError as e:
            logger.error(f"Azure OpenAI chat completion failed: {e}", exc_info=True)
            raise GenerationError(f"AI generation failed: {e}") from e

        text = None
        if response.choices and response.choices[0].message.content:
            text = response.choices[0].message.content.strip() or None
        usage = response.usage.model_dump() if response.usage is not None else None

        logger.info(f"Chat completion finished (usage: {usage})")
        return Completion(text=text, usage=usage)
