"""
Workflow CLI -- inspect and validate blueprints from the shell.

Commands:
    workflow show --blueprint module:Class|path.yaml
    workflow validate --blueprint module:Class|path.yaml

Entry point: the ``workflow`` console script or ``python -m scripts.cli``.
"""

from scripts.cli.main import main

__all__ = ["main"]
