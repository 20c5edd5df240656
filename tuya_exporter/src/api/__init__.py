"""
HTTP surface of the exporter (FastAPI).

CHANGELOG:
- 2026-10-18: Initial creation
"""
