"""Calendar layout command-line tool."""

import argparse
import json
import sys
from dataclasses import asdict
from datetime import timedelta
from pathlib import Path


def _to_json(events) -> list[dict]:
    rows = []
    for event in events:
        row = asdict(event)
        if event.recurrence_rule is not None:
            row["recurrence_rule"] = event.recurrence_rule.to_ical()
        rows.append({k: v for k, v in row.items() if v not in (None, [], {})})
    return rows


def main() -> None:
    """Main entry point for the py-calgrid tool."""
    parser = argparse.ArgumentParser(
        description="Expand and lay out the events of an iCalendar file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Occurrences of the next 7 days as JSON
  py-calgrid team.ics

  # Week grid (rows and bar geometry) of the week containing a date
  py-calgrid --layout week --start 2025-01-15 team.ics

  # Time column of one day, business hours only
  py-calgrid --layout day --start 2025-01-15 --business-hours 9-17 team.ics

  # Re-export bases, overrides and plain events
  py-calgrid --export team.ics > clean.ics
        """,
    )
    parser.add_argument(
        "--start",
        help="start of the range (ISO 8601, default: today)",
    )
    parser.add_argument(
        "--end",
        help="end of the range (ISO 8601, default: 7 days after start)",
    )
    parser.add_argument(
        "--layout",
        choices=["list", "day", "week", "month"],
        default="list",
        help="output format (default: list)",
    )
    parser.add_argument(
        "--timezone",
        help="timezone for floating times (default: CALGRID_TIMEZONE or UTC)",
    )
    parser.add_argument(
        "--day-max-events",
        type=int,
        help="row capacity of week and month grids",
    )
    parser.add_argument(
        "--first-day-of-week",
        type=int,
        help="0 = Sunday ... 6 = Saturday",
    )
    parser.add_argument(
        "--business-hours",
        help="visible hours of the day layout, e.g. 9-17",
    )
    parser.add_argument(
        "--export",
        action="store_true",
        help="print the events back as iCalendar instead of JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging (layout summaries, dropped events)",
    )
    parser.add_argument(
        "file",
        help="iCalendar file to read",
    )

    args = parser.parse_args()

    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file does not exist: {path}", file=sys.stderr)
        sys.exit(1)

    if args.debug:
        from py_calgrid.debug import setup_debug_logging
        setup_debug_logging()

    from py_calgrid.business_hours import BusinessHours
    from py_calgrid.config import CalendarConfig, get_config, set_config
    from py_calgrid.errors import CalendarError
    from py_calgrid.ical import export_icalendar, parse_icalendar
    from py_calgrid.layout import position_day_column, position_grid_events
    from py_calgrid.range_index import query_events
    from py_calgrid.timerange import end_of_day, get_month_weeks, get_week_days, now, start_of_day, to_instant

    defaults = get_config()
    try:
        config = CalendarConfig(
            timezone=args.timezone or defaults.timezone,
            uid_namespace=defaults.uid_namespace,
            day_max_events=(
                args.day_max_events if args.day_max_events is not None else defaults.day_max_events
            ),
            first_day_of_week=(
                args.first_day_of_week
                if args.first_day_of_week is not None
                else defaults.first_day_of_week
            ),
        )
        config.tzinfo  # unknown zones raise here
    except (ValueError, KeyError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    set_config(config)

    try:
        events = parse_icalendar(path.read_bytes())
    except (ValueError, CalendarError) as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.export:
        sys.stdout.write(export_icalendar(events, path.stem))
        return

    start = start_of_day(to_instant(args.start) if args.start else now())
    end = to_instant(args.end) if args.end else end_of_day(start + timedelta(days=6))

    try:
        if args.layout == "list":
            output = _to_json(query_events(events, start, end))

        elif args.layout == "day":
            business_hours = None
            if args.business_hours:
                first, _, last = args.business_hours.partition("-")
                business_hours = BusinessHours(start_hour=int(first), end_hour=int(last))
            day_events = query_events(events, start, end_of_day(start))
            output = _to_json(
                position_day_column(
                    day_events,
                    start,
                    business_hours=business_hours,
                    hide_non_business_hours=business_hours is not None,
                )
            )

        else:
            weeks = (
                [get_week_days(start, config.first_day_of_week)]
                if args.layout == "week"
                else get_month_weeks(start, config.first_day_of_week)
            )
            output = []
            for week in weeks:
                week_events = query_events(events, week[0], end_of_day(week[-1]))
                output.append(
                    {
                        "week": week[0].date().isoformat(),
                        "events": _to_json(
                            position_grid_events(week_events, week, config.day_max_events)
                        ),
                    }
                )
    except (ValueError, CalendarError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    json.dump(output, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
