"""CLI views: blueprint overview and validation tables."""

from workflow_kernel.domain.blueprint import WorkflowBlueprint
from workflow_kernel.domain.validator import BlueprintValidationResult

from scripts.cli.util import clip

W = 96


def _banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}".center(W))
    print("=" * W)


def show_blueprint(blueprint: WorkflowBlueprint) -> None:
    """Print each state with its outgoing transitions."""
    states = blueprint.state_collection()
    transitions = blueprint.transition_collection()

    _banner(f"BLUEPRINT {blueprint.blueprint_id}")
    initial = states.first()
    for state in states:
        marker = " (initial)" if initial is not None and state == initial else ""
        group = f"  [{state.group}]" if state.group else ""
        print(f"\n  {state.value}: {state.label()}{marker}{group}")
        outgoing = transitions.from_state(state)
        if not outgoing:
            print("      (no outgoing transitions)")
            continue
        for t in outgoing:
            flags = []
            if t.guards:
                flags.append("guards=" + ",".join(g.name for g in t.guards))
            if t.authorization is not None:
                flags.append(f"auth={t.authorization.capability or 'predicate'}")
            if t.rules:
                flags.append("requires=" + ",".join(t.required_fields() or list(t.rules)))
            if t.charge is not None:
                flags.append("charged")
            suffix = f"  ({'; '.join(flags)})" if flags else ""
            print(f"      -> {t.target:<16} {clip(t.label(), 32):<32}{suffix}")
    print(f"\n  Total: {len(states)} states, {len(transitions)} transitions")
    print()


def show_validation(result: BlueprintValidationResult) -> None:
    """Print the state and transition tables with their errors."""
    _banner(f"VALIDATION {result.blueprint_id}")

    print("\n  --- States ---")
    print(f"    {'Value':<16} {'Caption':<24} {'Additional':<28} {'Error'}")
    print(f"    {'-'*16} {'-'*24} {'-'*28} {'-'*16}")
    for row in result.states:
        print(
            f"    {clip(row.value, 16):<16} {clip(row.caption, 24):<24} "
            f"{clip(row.additional, 28):<28} {row.error or ''}"
        )

    print("\n  --- Transitions ---")
    print(
        f"    {'Source':<12} {'Target':<12} {'Caption':<20} {'Guards':<6} "
        f"{'Auth':<4} {'Rules':<20} {'Errors'}"
    )
    print(f"    {'-'*12} {'-'*12} {'-'*20} {'-'*6} {'-'*4} {'-'*20} {'-'*16}")
    for row in result.transitions:
        print(
            f"    {clip(row.source, 12):<12} {clip(row.target, 12):<12} "
            f"{clip(row.caption, 20):<20} {row.prerequisites:<6} {row.authorization:<4} "
            f"{clip(row.rules, 20):<20} {', '.join(row.errors)}"
        )

    print()
    if result.valid:
        print("  VALID")
    else:
        print(f"  INVALID: {len(result.errors)} error(s)")
        for err in result.errors:
            print(f"    ERROR: {err}")
    print()


def show_definition_errors(path: str, errors: list[str]) -> None:
    _banner(f"VALIDATION {path}")
    print()
    print(f"  INVALID: {len(errors)} error(s)")
    for err in errors:
        print(f"    ERROR: {err}")
    print()
