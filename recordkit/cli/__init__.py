"""Command line interface for recordkit."""

from .main import app, create_app, run_demo

__all__ = ["app", "create_app", "run_demo"]
