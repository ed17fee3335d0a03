"""Services used by the chat pipeline."""
