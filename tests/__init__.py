"""Test suite for ksengine."""
