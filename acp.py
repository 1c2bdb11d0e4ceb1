#!/usr/bin/env python
"""
Thin wrapper script to invoke the commit_composer CLI.

Running ``python acp.py`` is equivalent to running the ``acp`` console
script installed via ``pyproject.toml``.
"""

from commit_composer.cli import main


if __name__ == "__main__":
    main(prog_name="acp")
