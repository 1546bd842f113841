#!/usr/bin/env python3
"""
Staffing CLI - capacity views and assignments from the terminal.
"""

import sys

import uvicorn

from staffing import config
from staffing.allocation import AssignmentValidator
from staffing.entities import Engineer, Project, Registry
from staffing.errors import NotFound, StaffingError, ValidationError
from staffing.observability import configure_logging
from staffing.queries import CapacityQueries
from staffing.seed import seed_from_file
from staffing.state_store import get_store


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [
            max(len(str(row[i])) for row in [headers] + rows)
            for i in range(len(headers))
        ]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths)))


def _registry() -> Registry:
    return Registry(get_store())


def _resolve_engineer(registry: Registry, ref: str) -> Engineer:
    """Accept an engineer id or name."""
    engineer = registry.get_engineer(ref) or registry.find_engineer(ref)
    if engineer is None:
        raise NotFound("engineer", ref)
    return engineer


def _resolve_project(registry: Registry, ref: str) -> Project:
    """Accept a project id or name."""
    project = registry.get_project(ref) or registry.find_project(ref)
    if project is None:
        raise NotFound("project", ref)
    return project


def cmd_init(args):
    """Create or converge the database schema."""
    store = get_store()
    print(f"✓ Database ready: {store.db_path}")


def cmd_capacity(args):
    """Show every engineer's committed and remaining capacity."""
    views = CapacityQueries(_registry()).engineer_capacity_list()
    print_header("ENGINEER CAPACITY")
    if not views:
        print("No engineers registered.")
        return
    rows = [
        [
            v["name"],
            v["department"] or "-",
            f"{v['total_allocated']}%",
            f"{v['available_capacity']}%",
            f"{v['utilization_percent']}%",
            v["status"],
        ]
        for v in views
    ]
    print_table(["Engineer", "Department", "Allocated", "Available", "Utilization", "Status"], rows)


def cmd_availability(args):
    """Show the availability matrix with each engineer's assignments."""
    queries = CapacityQueries(_registry())
    cards = queries.availability()
    summary = queries.team_summary()

    print_header("TEAM AVAILABILITY")
    print(
        f"Engineers: {summary['total_engineers']}  "
        f"Available: {summary['available_resources']}  "
        f"High utilization: {summary['high_utilization']}  "
        f"Overloaded: {summary['overloaded']}"
    )
    for card in cards:
        print(f"\n{card['name']}  {card['current_allocation']}% allocated, "
              f"{card['available']}% free  [{card['status']}]")
        for a in card["assignments"]:
            print(
                f"   • {a['project_name'] or a['project_id']}  {a['allocation_percentage']}%  "
                f"{a['start_date'][:10]} → {a['end_date'][:10]}  "
                f"{a['status']}, {a['progress_percent']}%, {a['days_remaining_label']}"
            )


def cmd_assign(args):
    """assign <engineer> <project> <pct> <start> <end> [role]"""
    if len(args) < 5:
        raise ValidationError("Usage: assign <engineer> <project> <pct> <start> <end> [role]")

    registry = _registry()
    engineer = _resolve_engineer(registry, args[0])
    project = _resolve_project(registry, args[1])
    assignment = AssignmentValidator(registry.ledger).propose_assignment(
        engineer_id=engineer.id,
        project_id=project.id,
        allocation_percentage=args[2],
        start_date=args[3],
        end_date=args[4],
        role=" ".join(args[5:]) or None,
    )
    print(
        f"✓ Assigned {engineer.name} to {project.name} at "
        f"{assignment.allocation_percentage}% ({assignment.id})"
    )


def cmd_unassign(args):
    """unassign <project> <engineer>"""
    if len(args) < 2:
        raise ValidationError("Usage: unassign <project> <engineer>")

    registry = _registry()
    project = _resolve_project(registry, args[0])
    engineer = _resolve_engineer(registry, args[1])
    removed = AssignmentValidator(registry.ledger).propose_unassign(project.id, engineer.id)
    print(
        f"✓ Removed {engineer.name} from {project.name} "
        f"(released {removed.allocation_percentage}%)"
    )


def cmd_seed(args):
    """seed <file.yaml>"""
    if not args:
        raise ValidationError("Usage: seed <file.yaml>")
    counts = seed_from_file(args[0], registry=_registry())
    print(
        f"✓ Seeded {counts['engineers']} engineers, {counts['projects']} projects, "
        f"{counts['assignments']} assignments"
    )


def cmd_serve(args):
    """serve [--host HOST] [--port PORT]"""
    host, port = config.API_HOST, config.API_PORT
    it = iter(args)
    for flag in it:
        if flag == "--host":
            host = next(it, host)
        elif flag == "--port":
            value = next(it, port)
            try:
                port = int(value)
            except ValueError:
                raise ValidationError(f"--port must be an integer, got {value!r}") from None
        else:
            raise ValidationError(f"Unknown option: {flag}")
    uvicorn.run("staffing_api.server:app", host=host, port=port, log_config=None)


def cmd_help(args):
    """Show help."""
    print_header("STAFFING CLI")
    print("""
COMMANDS:

  init                                  Create or converge the database
  capacity                              Show engineer capacity
  availability                          Show availability matrix
  assign <eng> <proj> <pct> <s> <e> [r] Assign engineer to project
  unassign <proj> <eng>                 Remove engineer from project
  seed <file.yaml>                      Load engineers, projects, assignments
  serve [--host H] [--port P]           Run the HTTP API
  help                                  Show this help

Engineers and projects may be given by id or by name.
Dates are ISO (2024-01-31); a bare date means midnight UTC.
""")


COMMANDS = {
    "init": cmd_init,
    "capacity": cmd_capacity,
    "cap": cmd_capacity,
    "availability": cmd_availability,
    "avail": cmd_availability,
    "assign": cmd_assign,
    "unassign": cmd_unassign,
    "seed": cmd_seed,
    "serve": cmd_serve,
    "help": cmd_help,
    "-h": cmd_help,
    "--help": cmd_help,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)

    if not argv:
        cmd_help([])
        return 0

    cmd, args = argv[0], argv[1:]
    if cmd not in COMMANDS:
        print(f"Unknown command: {cmd}")
        print("Run 'help' for available commands.")
        return 2

    try:
        COMMANDS[cmd](args)
    except StaffingError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
