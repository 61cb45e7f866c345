"""
Service layer.

Each service encapsulates the business rules and SQL for one domain.
Services raise the errors defined in ``core.errors``; the API layer
turns them into HTTP responses.
"""
