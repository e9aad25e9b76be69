"""Command-line entry points for operating the adapters.

Commands include:
- ``bootstrap_store``: run the vector store schema setup and report health.
"""
