"""
Rootstock Yield RAG - Source Package
====================================

Keyword-retrieval knowledge base over yield-bearing protocols on the
Rootstock chain. Pool records are synthesized into protocol, category and
project summaries, and the most relevant ones are rendered as grounding
context for a language model.
"""

__version__ = "1.0.0"
