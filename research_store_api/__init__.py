"""
Top-level package for the Research Store API.

Everything lives in the ``app`` subpackage so modules can be imported
with fully qualified names such as ``research_store_api.app.main``.
"""

__all__ = []
