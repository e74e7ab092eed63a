"""Storage, import, and summarization services."""
