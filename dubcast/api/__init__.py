"""
HTTP API for Dubcast (FastAPI).
"""
