"""CLI query interface for the orchestration audit trail.

Provides an argparse-based command-line tool for querying audit entries
with filters by action, actor, entity, date range, and a shorthand
``--last`` duration. Output formats: table (default) or JSON.

Usage::

    leadflow-audit --action runner.step_failed --last 7d
    leadflow-audit --entity plan:plan_evt_123 --format json
"""

from __future__ import annotations

import argparse
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from leadflow.audit.models import AuditAction
from leadflow.audit.store import close_audit_db, init_audit_db, query_audit_trail


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for audit trail queries.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Query the lead orchestration audit trail")

    parser.add_argument(
        "--action",
        type=str,
        choices=[a.value for a in AuditAction],
        help="Filter by action",
    )
    parser.add_argument("--actor", type=str, help="Filter by actor (e.g. an operator id)")
    parser.add_argument(
        "--entity",
        type=str,
        help='Filter by entity as TYPE or TYPE:ID (e.g. "plan:plan_evt_1")',
    )
    parser.add_argument("--from-date", type=str, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to-date", type=str, help="End date (YYYY-MM-DD)")
    parser.add_argument(
        "--last",
        type=str,
        help='Shorthand duration (e.g., "7d", "24h")',
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    parser.add_argument("--limit", type=int, default=50, help="Maximum results (default: 50)")
    parser.add_argument(
        "--db",
        type=str,
        default="data/leadflow.db",
        help="Path to the database (default: data/leadflow.db)",
    )

    return parser


def parse_last_duration(last: str, now: datetime | None = None) -> str:
    """Convert a shorthand duration to an ISO 8601 date string.

    Supported formats: ``Nd`` (N days ago) and ``Nh`` (N hours ago).

    Args:
        last: Duration string like ``"7d"`` or ``"24h"``.
        now: Reference time; defaults to the current UTC time.

    Returns:
        ISO 8601 date-time string for the computed past time.

    Raises:
        ValueError: If the format is not recognized.
    """
    if not last or len(last) < 2:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg)

    unit = last[-1]
    try:
        value = int(last[:-1])
    except ValueError:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg) from None

    now = now or datetime.now(tz=UTC)

    if unit == "d":
        result = now - timedelta(days=value)
    elif unit == "h":
        result = now - timedelta(hours=value)
    else:
        msg = f"Unrecognized duration format: {last!r}. Use 'd' for days or 'h' for hours."
        raise ValueError(msg)

    return result.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_entity(entity: str) -> tuple[str, str | None]:
    """Split an ``--entity`` argument into ``(entity_type, entity_id)``."""
    entity_type, _, entity_id = entity.partition(":")
    return entity_type, entity_id or None


def format_table(results: list[dict[str, Any]]) -> str:
    """Format audit results as a human-readable table.

    Columns: Timestamp, Action, Actor, Entity, Details.  Long fields are
    truncated to fit reasonable terminal width.

    Args:
        results: List of audit entry dicts from ``query_audit_trail``.

    Returns:
        Formatted table string with header row.
    """
    if not results:
        return "No results found."

    headers = ["Timestamp", "Action", "Actor", "Entity", "Details"]
    widths = [27, 22, 12, 28, 40]

    def truncate(value: str | None, width: int) -> str:
        s = str(value or "")
        if len(s) > width:
            return s[: width - 3] + "..."
        return s

    lines: list[str] = []

    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    lines.append(header_line)
    lines.append("-" * len(header_line))

    for row in results:
        entity = row.get("entity_type") or ""
        if row.get("entity_id"):
            entity = f"{entity}:{row['entity_id']}"
        details = json.dumps(row["payload"]) if row.get("payload") else ""
        cells = [
            truncate(row.get("timestamp"), widths[0]),
            truncate(row.get("action"), widths[1]),
            truncate(row.get("actor"), widths[2]),
            truncate(entity, widths[3]),
            truncate(details, widths[4]),
        ]
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))

    return "\n".join(lines)


def format_json(results: list[dict[str, Any]]) -> str:
    """Format audit results as a pretty-printed JSON string."""
    return json.dumps(results, indent=2)


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, query audit trail, and print results."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from_date = args.from_date
    if args.last:
        from_date = parse_last_duration(args.last)

    entity_type: str | None = None
    entity_id: str | None = None
    if args.entity:
        entity_type, entity_id = parse_entity(args.entity)

    db_path = Path(args.db)
    if not db_path.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_audit_db(db_path)

    try:
        results = query_audit_trail(
            conn,
            action=args.action,
            actor=args.actor,
            entity_type=entity_type,
            entity_id=entity_id,
            from_date=from_date,
            to_date=args.to_date,
            limit=args.limit,
        )

        output = format_json(results) if args.output_format == "json" else format_table(results)

        print(output)
    finally:
        close_audit_db(conn)


if __name__ == "__main__":
    main()
