"""
Core Application Layer - Configuration, Prompts and Errors
==========================================================

Modules:
    constants: Configuration values and Pydantic settings validation
    prompts: System instructions and the web search tool description
    exceptions: ``AppException`` hierarchy shared by routes and the orchestrator

Key Components:

Configuration (constants.py):
    Centralized configuration using Pydantic Settings for validation:
    - OpenAI, Exa and Google credentials (all optional at startup)
    - Search result limits and provider timeout
    - Flush buffer thresholds and the tool hop cap
    - Thread store backend and PostgreSQL pool sizing
    - WebSocket limits and logging options

Exceptions (exceptions.py):
    - ``MissingCredentials``: raised before any output when a key is absent
    - ``ProviderError``: search failure, returned to the model as a tool result
    - ``StreamAborted`` / ``SearchCancelled``: the request's token fired
    - ``UpstreamStreamError``: the model stream broke
    - ``PersistenceWarning``: thread store write failed, logged only
"""
