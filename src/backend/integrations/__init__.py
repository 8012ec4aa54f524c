"""
Integrations Module - External System Integrations
===================================================

Adapters for the upstream services an answer depends on.

Modules:
    model_stream: OpenAI chat completions streaming adapter
    search: Web search providers behind the ``SearchProvider`` strategy

Key Components:

Model Stream (model_stream.py):
    Wraps ``AsyncOpenAI.chat.completions.create(stream=True)``:
    - Yields ``ContentDelta`` for each text fragment, in order
    - Reassembles tool call fragments by index into complete ``ToolCall`` objects
    - Ends a tool-calling segment with one ``ToolCallSignal``
    - Wraps API and transport failures in ``UpstreamStreamError``

Search Providers (search/):
    - ``ContentSearchProvider``: Exa REST API over httpx
    - ``GroundedSearchProvider``: Gemini with the ``google_search`` tool (google-genai)
    - ``SearchProviderFactory``: Builds the provider a request asked for

Example:
    Streaming one segment:

        stream = ModelStream(create_openai_client(api_key), "gpt-4o-mini")
        async for unit in stream.stream(messages, tools):
            if isinstance(unit, ContentDelta):
                print(unit.text, end="")

See Also:
    :mod:`api.services.chat_service`: The orchestrator that consumes both
"""
