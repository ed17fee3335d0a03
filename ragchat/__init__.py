"""Chat service: cache-aside data layer over a session store and a knowledge base."""

__version__ = "1.0.0"
