# Services package init
"""
NoteCraft Backend: Services Layer
===================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Routes handle HTTP, services handle rules; each can be tested alone.

Service Inventory:
    - corrections: Pure offset-based correction applier (the core)
    - text_cleaning: HTML/markdown stripping and word counting
    - LLMService (abstract) / GeminiService: summaries and style rewrites
    - GrammarService: LanguageTool grammar and spelling checks
    - NoteService: Owner-scoped note persistence
    - AuthService: Password hashing, bearer tokens, register/login
"""
