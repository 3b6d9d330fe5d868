"""Gemini-backed insight generation."""
