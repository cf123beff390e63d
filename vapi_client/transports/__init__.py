"""Real-time transport adapters."""
