"""
vpkg test suite
===============

Test Modules
------------
- test_casing.py: Tests for the case-conversion helpers
- test_models.py: Tests for Pydantic models
- test_registry.py: Tests for index loading and descriptor parsing
- test_context.py: Tests for context building and destination resolution
- test_renderer.py: Tests for template rendering
- test_installer.py: Tests for the install pipeline
- test_query.py: Tests for package discovery
- test_config.py: Tests for settings resolution
- test_cli.py: Tests for command-line interface

Fixtures
--------
tests/fixtures/registry holds a small registry with three packages
(vandor/redis-cache, vandor/redis-cli, vandor/http-server).

Running Tests
-------------
    # Run all tests
    pytest

    # Run with coverage
    pytest --cov=src/vpkg

    # Run specific test class
    pytest tests/test_installer.py::TestAllOrNothing
"""
