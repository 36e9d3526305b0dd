"""Movie catalog enrichment and LLM-backed recommendations."""

__version__ = "0.1.0"
