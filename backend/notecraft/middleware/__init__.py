# Middleware package init
"""
NoteCraft Backend: Middleware Package
=======================================

Chain, outermost first:
    Request → [CORS] → [Request ID] → [Access Log] → [Rate Limit] → [GZip] → Route

    1. CORS outermost so every answer, a 429 included, carries its headers
       and preflights are answered before any limit is counted
    2. Request ID next so every later log line and error body carries it
       (including 429 responses from the rate limiter)
    3. Access log wraps the rest so its duration covers all processing
    4. Rate limit rejects abusive clients before any route work

Starlette wraps middleware in reverse registration order, so main.py adds
them innermost first.
"""
