"""
NoteCraft Backend: Application Package
========================================

REST API for a note-taking app with AI assistance: accounts, owner-scoped
notes, summaries and style rewrites (Gemini), grammar checks (LanguageTool),
and offset-safe application of grammar corrections.

Layers:

    ┌─────────────────────────────────────┐
    │   Routes (auth, notes, ai, health)  │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services                          │  ← Rules, providers, corrections
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database                          │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
