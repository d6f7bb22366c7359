"""
API routes for Dubcast
"""
