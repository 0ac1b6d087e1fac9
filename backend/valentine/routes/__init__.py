"""
Valentine Backend: API Routes Package
=======================================

Route Inventory:
    - surprises.py: POST /api/create-surprise
                    GET  /api/get-surprise/{id}
                    GET  /api/check-surprise/{id}
    - health.py:    GET  /health
    - pages.py:     GET  /  (valentine.html)

Routes stay thin: extract request data, call SurpriseService, return the
response model. Status codes for failures come from the global handlers.
"""
