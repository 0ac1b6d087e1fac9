"""
Valentine Backend: Middleware Package
=======================================

Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

The request id is set first so the access log line can carry it.
"""
