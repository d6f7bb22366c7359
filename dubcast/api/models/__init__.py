"""
Pydantic models for Dubcast API
"""
