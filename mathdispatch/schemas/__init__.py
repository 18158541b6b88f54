# Schemas package init
"""
MathDispatch — Schemas Package
===============================

What:  Pydantic models describing data that crosses the dispatcher boundary.

Schema Inventory:
    - envelope.py: ResponseEnvelope / ImageResult (every dispatch result)
"""
