"""
API Layer - FastAPI application, routes, services, and WebSocket handling
=========================================================================

Modules:
    main: Application factory, lifespan, middleware and router registration
    dependencies: Annotated dependency aliases for route handlers
    routes: ``/ws/chat/{thread_id}`` and the ``/api/v1`` routers
    services: Streaming orchestrator, flush buffer, frame sinks, thread stores
    middleware: Request context and exception handlers
    websocket: Connection manager, cancellation token, close codes
"""
