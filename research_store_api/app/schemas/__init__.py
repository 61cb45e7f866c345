"""
Pydantic schema definitions for API payloads.

Schemas are kept apart from the SQL in the service layer so the API
representation never leaks storage-only columns such as password
hashes or asset keys.
"""
