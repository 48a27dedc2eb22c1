"""CLI main: argument parsing and command dispatch."""

import argparse
import logging
import sys

from workflow_kernel.domain.validator import BlueprintValidator
from workflow_kernel.logging_config import configure_logging

from scripts.cli.resolve import RESOLUTION_ERRORS, DefinitionInvalid, resolve_blueprint
from scripts.cli.util import enable_quiet_logging, restore_logging
from scripts.cli.views import show_blueprint, show_definition_errors, show_validation

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_UNRESOLVED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow",
        description="Inspect and validate workflow blueprints.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="emit structured JSON logs on stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("show", "print each state and its outgoing transitions"),
        ("validate", "print state/transition tables; exit 1 when invalid"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "--blueprint",
            required=True,
            help="module:Class identifier or path to a YAML blueprint",
        )
        cmd.add_argument(
            "--guards",
            default=None,
            help="module:attribute of the GuardRegistry for a YAML blueprint",
        )
    return parser


def _resolve(args):
    try:
        return resolve_blueprint(args.blueprint, args.guards), None
    except DefinitionInvalid as exc:
        show_definition_errors(exc.path, exc.errors)
        return None, EXIT_INVALID
    except RESOLUTION_ERRORS as exc:
        print(f"  ERROR: cannot resolve blueprint {args.blueprint}: {exc}", file=sys.stderr)
        return None, EXIT_UNRESOLVED


def cmd_show(args) -> int:
    blueprint, code = _resolve(args)
    if blueprint is None:
        return code
    show_blueprint(blueprint)
    return EXIT_OK


def cmd_validate(args) -> int:
    blueprint, code = _resolve(args)
    if blueprint is None:
        return code
    result = BlueprintValidator(blueprint).validate()
    show_validation(result)
    return EXIT_OK if result.valid else EXIT_INVALID


COMMANDS = {
    "show": cmd_show,
    "validate": cmd_validate,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    muted = []
    if args.verbose:
        configure_logging(level=logging.DEBUG)
    else:
        muted = enable_quiet_logging()
    try:
        return COMMANDS[args.command](args)
    finally:
        restore_logging(muted)
