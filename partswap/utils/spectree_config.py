"""
Spectree configuration with Pydantic v2 compatibility.
"""
from flask import Flask
from spectree import SpecTree

# Initialized by configure_spectree() before the API modules are imported
api: SpecTree = None  # type: ignore


def configure_spectree(app: Flask) -> SpecTree:
    """
    Configure Spectree for the Flask app.

    Returns:
        SpecTree: Configured Spectree instance
    """
    global api

    api = SpecTree(
        backend_name="flask",
        app=app,
        title="PartSwap API",
        version="1.0.0",
        description="Electronic component database with drop-in replacement search",
        path="docs",  # OpenAPI docs available at /docs
        validation_error_status=400,
    )

    return api
