"""
Trust Engine - Community Contribution & Trust Pipeline

Validates, moderates, scores and fans out community contributions.
Connects to Postgres for data and exposes a small FastAPI surface.
"""

__version__ = "0.1.0"
