"""
Turnwise Test Suite

This package contains all tests for the turnwise turn-taking layer.

Test Organization:
    tests/
    ├── __init__.py          # This file
    ├── conftest.py          # Shared fixtures
    ├── fixtures/            # Mock speech engine, recording sink
    ├── unit/                # One module per turnwise module
    └── e2e/                 # Multi-turn conversation scenarios

Running Tests:
    # Run all tests
    pytest tests/

    # Run only end-to-end scenarios
    pytest tests/ -m e2e

    # Run with coverage
    pytest tests/ --cov=turnwise --cov-report=html

Requirements:
    pip install -e ".[test]"

Timer tests use short real delays on the asyncio loop; no audio hardware or
conversational backend is needed.
"""
