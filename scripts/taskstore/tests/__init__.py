"""Test suite for the taskstore package.

Covers the task models, both key-value backends, protocol compliance and the
persistence adapter.
"""
