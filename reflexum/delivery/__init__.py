"""Outbound message sinks."""
