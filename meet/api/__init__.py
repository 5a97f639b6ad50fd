"""Meet HTTP API (FastAPI)"""
