"""Tests for the release signing orchestrator."""
