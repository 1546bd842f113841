"""HTTP surface of the staffing engine (FastAPI)."""
