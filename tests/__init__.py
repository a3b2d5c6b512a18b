"""
Tests Package - Unit Tests

Test structure:
- tests/conftest.py - shared fixtures (client config, mocked HTTP transport)
- tests/helpers.py - base URI and JSON response builder
- tests/test_*.py - unit tests per module

HTTP traffic is simulated with httpx.MockTransport; no test touches the network.
"""
