"""
Test suite for page-pilot.

Provides tests for all modules:
- Unit tests for the session core against an in-memory engine
- Operation tests checking what reaches the page
- Adapter tests for the Playwright engine helpers
"""
