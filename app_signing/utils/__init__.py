"""Utilities: prompting, local files, HTTP pooling, retries and logging."""
