"""Test package for clusterables.

This package contains:
- Unit tests (test_spatial.py, test_manager.py, test_config.py)
- Map server tests (test_map_server.py)
- Property and end-to-end tests (test_integration.py)
- Shared test doubles (helpers.py) and fixtures (conftest.py)
"""
