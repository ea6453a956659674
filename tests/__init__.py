"""Test suite for formlink.

This package contains tests for:
- Validity engine (merging, change detection, reconciliation)
- Change detection and submission state transitions
- Intents, configuration and JSON Schema validators
- The in-memory form store
- Form controller and connected forms end to end
"""
