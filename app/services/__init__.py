"""LLM provider clients used by the metadata generator."""
