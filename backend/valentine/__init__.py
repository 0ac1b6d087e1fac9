"""
Valentine Backend: Application Package
========================================

Layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │      Services (Business Logic)      │  ← create / get / check, images
    ├─────────────────────────────────────┤
    │     Models & Schemas (Data)         │  ← SQLAlchemy row + Pydantic
    ├─────────────────────────────────────┤
    │      Database (Persistence)         │  ← explicitly owned handle
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
