"""API layer: canonical query/mutation surface for the views, CLI and export.

Key rules:

1. No SQLAlchemy imports - only call repo functions (Session is allowed for type hints)
2. Return Pydantic models or plain records only
3. Mutations commit through the repo helpers and raise ApiError on failure
4. Filtering/sorting/pagination of lists lives in projection.py, not in queries
"""
