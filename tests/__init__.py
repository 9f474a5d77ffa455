"""Test suite for the formstate engine.

This package contains tests for:
- Field schema construction and lookup
- Validators and the validation engine
- Submission state machine transitions
- Event system (emission, serialization)
- Success-banner scheduling
- Form engine operations and end-to-end scenarios
"""
