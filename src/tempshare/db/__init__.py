"""Database layer: engine setup, models, repositories and queries."""
