"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (schemas, adapters, switching,
  render scheduling, notifications, table rendering)

Uses pytest with pytest-asyncio for testing async functionality. No test
touches the network.
"""
