"""
Request-scoped services behind the transports.

Modules:
    chat_service: ``StreamState`` machine driving one answer to a terminal frame
    conversation: Model input assembly from thread history
    flush_buffer: Adaptive pacing of model deltas into content frames
    frame_sink: WebSocket and queue-backed frame destinations
    thread_store: In-memory and PostgreSQL thread history
"""
