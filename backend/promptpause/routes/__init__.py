# Routes package init
"""
Prompt & Pause Backend — API Routes Package
============================================

Route Inventory:
    - prompts.py:      POST /api/prompts/generate            (daily prompt)
    - maintenance.py:  /api/admin/maintenance/...            (admin only)
    - health.py:       GET  /health                          (service health)

Routes stay thin: extract request data, call a service, shape the response.
"""
