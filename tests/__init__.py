"""Tests for aiomultiroom."""
