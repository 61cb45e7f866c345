"""
Application package for the research report storefront.

The API is split by domain: customer and staff accounts, the report
catalog, payments and entitlements, customer queries, and the small
content and HR features the staff dashboard uses.  Each domain exposes
a router in ``api/v1/endpoints``, a service in ``services`` and its
payload models in ``schemas``.
"""

from .main import app  # noqa: F401
