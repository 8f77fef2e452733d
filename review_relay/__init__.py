"""PR review relay: GitHub webhook intake and model-backed diff review."""

__version__ = "0.1.0"
