"""
askstream - Streaming question answering with live web search
==============================================================

FastAPI backend that answers questions with a chat model which can call a
``webSearch`` tool, streaming progress and answer text as they are produced.

Key Features:
    - **Two Transports**: WebSocket (``/ws/chat/{thread_id}``) and NDJSON over HTTP (``POST /api/v1/ask``)
    - **Pluggable Search**: Exa content search or Gemini with Google Search grounding, per request
    - **Paced Output**: Adaptive flush buffer emits phrase-sized chunks at a steady rhythm
    - **Cooperative Cancellation**: Interrupts and disconnects stop the answer without committing it
    - **Thread History**: In-memory or PostgreSQL thread store
    - **Structured Logging**: JSON logs with request and thread correlation
    - **Metrics**: Prometheus counters and histograms at ``/metrics``

Modules:
    api: FastAPI routes, the streaming orchestrator, middleware, and WebSocket handling
    core: Settings, constants, prompts, and the exception hierarchy
    tools: The ``webSearch`` tool and the registry that executes tool calls
    models: Pydantic models for frames, threads, search results, and API schemas
    utils: Logging, metrics, HTTP/OpenAI client factories, database helpers
    integrations: OpenAI streaming adapter and the search providers
"""
