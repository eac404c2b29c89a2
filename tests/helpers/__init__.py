# tests/helpers/__init__.py
"""Shared builders and assertions for the ksengine test-suite."""
