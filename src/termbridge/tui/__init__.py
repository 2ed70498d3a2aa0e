"""Textual host UI for the embedded terminal session."""
