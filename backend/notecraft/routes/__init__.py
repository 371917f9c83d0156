# Routes package init
"""
NoteCraft Backend: API Routes Package
=======================================

Route Inventory:
    - auth.py:    POST /api/auth/register, POST /api/auth/login
    - notes.py:   GET/POST /api/notes, GET/PUT/DELETE /api/notes/{id},
                  POST /api/notes/{id}/corrections
    - ai.py:      POST /api/ai/{summarize,check,style-transform,apply,fix-all}
    - health.py:  GET /health

Routes stay thin: parse the request, call a service, shape the response.
Errors are raised as NoteCraftError subclasses and rendered by the
handlers registered in main.py.
"""
