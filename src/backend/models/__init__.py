"""
Models Module - Data Models and Type Definitions
=================================================

Pydantic v2 models for validation and JSON serialization.

Modules:
    frames: Output frames (``thinking``, ``content``, ``done``, ``error``)
    thread_models: ``Message`` history records and ``MessageRole``
    search_models: Normalized search results and provider progress events
    error_models: ``ErrorCode`` values and the REST ``ErrorResponse`` body
    schemas: Request/response models for the HTTP API
"""
