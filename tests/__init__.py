"""Tests for skill-composer."""
