"""
Top-level package for commit_composer.

This package turns a raw unified diff into commit message requests that
respect the token budget of a text generation backend. The CLI entry
point lives in ``commit_composer.cli``.
"""

__all__ = ["__version__"]

__version__ = "0.3.0"
