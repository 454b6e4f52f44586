"""Application level configuration (logging, error monitoring)."""
