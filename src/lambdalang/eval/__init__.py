"""Evaluator helper modules shared by the synchronous and CPS evaluators."""

__all__ = [
    "expr",
    "helpers",
]
