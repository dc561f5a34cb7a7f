"""
Postcraft Backend Application Package

This package contains the FastAPI backend for the AI-assisted content
generation pipeline, including:

- main.py: FastAPI application, exception handlers and router wiring
- services/: session state machine, version selection, assets, usage ledger
- generation_service.py: OpenAI-backed content and asset generation
"""

__version__ = "1.0.0"
