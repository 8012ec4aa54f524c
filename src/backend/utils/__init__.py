"""
Utils Module - Infrastructure Utilities
=======================================

Modules:
    logger: JSON structured logging with rotation and request correlation
    metrics: Prometheus collectors
    client_factory: httpx and AsyncOpenAI client construction
    db_utils: asyncpg pool creation, health checks, retries and shutdown

Logging (logger.py):
    - Console handler: colored, human-readable output to stderr
    - Conversation handler: JSON Lines to logs/conversations.jsonl
    - Error handler: JSON Lines to logs/errors.jsonl

    Prompt and answer text is hidden unless LOG_CONTENT is enabled.
"""
