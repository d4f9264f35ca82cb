"""
Configuration Management for Rootstock Yield RAG
=================================================

Centralized settings for the record source, the document synthesizer,
retrieval and the API. Every section reads environment variables with its
own prefix so deployments can override values without code changes.

Using pydantic-settings for type-safe configuration with .env support.
"""

from pathlib import Path
from typing import List
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field

# Load .env file from project root
load_dotenv(Path(__file__).parent.parent / ".env")


class SourceSettings(BaseSettings):
    """
    Upstream Record Source Configuration

    Pools are pulled from the DeFiLlama yields endpoint and filtered
    to a single chain. A pull is reused until it is older than the TTL.
    """

    pools_url: str = "https://yields.llama.fi/pools"
    chain: str = "Rootstock"  # Exact value of the upstream "chain" field

    cache_ttl_seconds: int = 15 * 60
    timeout_seconds: float = 30.0

    class Config:
        env_prefix = "RAG_SOURCE_"


class SynthesisSettings(BaseSettings):
    """
    Document Synthesis Configuration

    Controls how records are rendered into searchable documents.
    """

    # Size of the top-APY and top-TVL rankings
    top_n: int = 5

    chain_display_name: str = "Rootstock"

    # Chain and base-asset terms attached to every document
    domain_keywords: List[str] = Field(
        default_factory=lambda: ["rootstock", "rsk", "bitcoin"]
    )

    class Config:
        env_prefix = "RAG_SYNTH_"


class RetrievalSettings(BaseSettings):
    """
    Retrieval Configuration
    """

    # Documents handed to the context assembler per query
    top_k: int = 5

    # Query used by the debug endpoint to show a sample context
    sample_query: str = "What are the best yield opportunities on Rootstock?"

    class Config:
        env_prefix = "RAG_RETRIEVAL_"


class Settings(BaseSettings):
    """
    Master Settings Container

    Aggregates all configuration sections for easy access.
    Usage:
        from config.settings import settings
        print(settings.source.pools_url)
    """

    source: SourceSettings = Field(default_factory=SourceSettings)
    synthesis: SynthesisSettings = Field(default_factory=SynthesisSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    version: str = "1.0.0"

    # Debug mode - enables verbose query tracing
    debug: bool = False

    def describe(self) -> None:
        """Print the effective configuration."""
        print(f"[Config] Source: {self.source.pools_url} (chain={self.source.chain})")
        print(f"[Config] Cache TTL: {self.source.cache_ttl_seconds}s")
        print(f"[Config] Top-N: {self.synthesis.top_n}, top-k: {self.retrieval.top_k}")

    class Config:
        env_prefix = "RAG_"


# Global settings instance
settings = Settings()
