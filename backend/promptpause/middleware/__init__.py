# Middleware package init
"""
Prompt & Pause Backend — Middleware Package
============================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    - Rate limiting rejects abusive clients before any other work
    - The request id is set before logging so every log line carries it
    - Responses pass back through in reverse order, so the access log sees
      the final status and the X-Request-ID header is always present
"""
