"""Command line interface for NoteDB."""
