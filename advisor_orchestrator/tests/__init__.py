"""Tests for Advisor Orchestrator."""
