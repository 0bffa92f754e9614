"""
LLM Provider Routing - Configurable provider selection
"""
from enum import Enum

from langchain_core.language_models import BaseChatModel
from langchain_community.chat_models import ChatOllama

from app.core.config import settings
from app.core.logging import logger


class LLMProvider(str, Enum):
    BEDROCK = "bedrock"
    OLLAMA = "ollama"


def get_llm(provider: str = settings.LLM_PROVIDER) -> BaseChatModel:
    """
    Get the configured LLM instance.

    Intent resolution needs short, near-deterministic answers, so the
    temperature is kept low for both providers.
    """
    logger.info(f"Using LLM provider: {provider}")

    if provider == LLMProvider.BEDROCK.value:
        return _get_bedrock_llm()
    return _get_ollama_llm()


def _get_ollama_llm() -> BaseChatModel:
    """Get Ollama LLM instance."""
    return ChatOllama(
        model=settings.OLLAMA_MODEL,
        base_url=settings.OLLAMA_BASE_URL,
        temperature=0.1,
    )


def _get_bedrock_llm() -> BaseChatModel:
    """Get AWS Bedrock LLM instance."""
    from langchain_aws import ChatBedrock
    import boto3

    bedrock_runtime = boto3.client(
        "bedrock-runtime",
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )

    return ChatBedrock(
        client=bedrock_runtime,
        model_id=settings.BEDROCK_MODEL_ID,
        model_kwargs={"temperature": 0.1, "max_tokens": 200},
    )
