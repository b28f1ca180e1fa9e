"""
API Routes Package
==================
Helpers shared by the route handlers in api.py.

Modules:
  helpers  - row coercion, row -> model mapping, analysis-window filtering
"""
