"""
Web application package for the Amazon game viewer.

Provides a FastAPI REST API in front of the notation package and the UCI
engine bridge. Serve with any ASGI server, e.g. `uvicorn web.app:app`.
"""
