"""
Dubcast - multi-language dubbed HLS bundles.

Keeps one video rendition plus per-language dubbed audio renditions
published behind a master playlist, reconciled against a registry of
dub-track state.
"""

__version__ = "1.0.0"
