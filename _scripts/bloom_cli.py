"""
Bloom CLI - Command line interface for Bloom analytics

Copyright (c) 2025 Bloomsline
Licensed under AGPLv3 - See LICENSE in repository root

Usage:
    python bloom_cli.py moments <file.json>            - Emotion analytics
    python bloom_cli.py progress <file.json>           - Weekly and monthly progress
    python bloom_cli.py seeds <file.json> [--day D]    - Seed streaks (and one day's seeds)
    python bloom_cli.py rituals <file.json>            - Ritual insights
    python bloom_cli.py report <file.json>             - Everything, as JSON
    python bloom_cli.py config                         - Validate BLOOM_* environment
    python bloom_cli.py config help                    - List configuration options

Options (analytics commands):
    --now ISO        Evaluate as of this instant (default: now)
    --tz NAME        IANA timezone for day bucketing (default: BLOOM_TIMEZONE)
    --day YYYY-MM-DD Day detail for the seeds command
    --json           Raw JSON output

The input file is a JSON object with any of the arrays: moments,
completions, anchor_logs, anchors, member_rituals.
"""

import sys
import json
from pathlib import Path
from typing import List, Optional

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from bloom_engine import (
    BloomConfig,
    BloomError,
    MomentAnalytics,
    ProgressAnalytics,
    SeedAnalytics,
    RitualInsights,
    build_report,
    load_bundle_file,
)
from bloom_engine.config_validator import (
    validate_on_startup,
    get_config_summary,
    print_config_help,
)
from bloom_engine.dates import local_date_key, parse_date_key, resolve_timezone
from bloom_engine.logging_utils import setup_logging


# =============================================================================
# HELPERS
# =============================================================================

def get_option(args: List[str], name: str) -> Optional[str]:
    """Value following --name, or None."""
    if name not in args:
        return None
    idx = args.index(name)
    if idx + 1 >= len(args):
        print(f"Missing value for {name}")
        sys.exit(1)
    return args[idx + 1]


def positional(args: List[str]) -> List[str]:
    """Arguments that are neither flags nor flag values."""
    result = []
    skip = False
    for arg in args:
        if skip:
            skip = False
            continue
        if arg in ("--now", "--tz", "--day"):
            skip = True
            continue
        if not arg.startswith("--"):
            result.append(arg)
    return result


def load_context(args: List[str]):
    """Resolve (bundle, now, tz, config) for an analytics command."""
    files = positional(args)
    if not files:
        print(__doc__)
        sys.exit(1)

    path = Path(files[0])
    if not path.exists():
        print(f"❌ File not found: {path}")
        sys.exit(1)

    config = BloomConfig.from_env()
    tz = resolve_timezone(get_option(args, "--tz") or config.timezone)
    bundle = load_bundle_file(path, tz=tz)

    if bundle.report.skipped_count:
        print(f"⚠️  Skipped {bundle.report.skipped_count} malformed row(s)", file=sys.stderr)
        for row in bundle.report.skipped[:5]:
            print(f"    {row.collection}[{row.index}]: {row.reason}", file=sys.stderr)

    return bundle, get_option(args, "--now"), tz, config


def print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


# =============================================================================
# ANALYTICS COMMANDS
# =============================================================================

def cmd_moments(args: List[str]):
    """Emotion analytics over moments."""
    bundle, now, tz, config = load_context(args)
    analytics = MomentAnalytics.from_bundle(bundle, now=now, config=config, tz=tz)

    if "--json" in args:
        print_json(analytics.to_dict())
        return

    print(f"\nEmotion Analytics")
    print(f"As of: {analytics.now:%Y-%m-%d %H:%M}")
    print("=" * 60)

    print(f"\n📊 Overview")
    print(f"  Moments: {len(analytics.moments)}")
    print(f"  Active days: {analytics.active_days}")
    print(f"  Distinct moods: {analytics.unique_mood_count}")

    if analytics.sorted_moods:
        print(f"\n🎨 Mood Palette")
        for entry in analytics.palette:
            print(f"  {entry['mood']:<14} {entry['count']:4}  ({entry['pct']}%)")

    print(f"\n🔥 Streak")
    print(f"  Current: {analytics.streak.current} day(s)")
    print(f"  Longest: {analytics.streak.longest} day(s)")

    if analytics.top_days:
        print(f"\n☀️  Brightest Days")
        for day in analytics.top_days:
            snippet = f" - {day.snippet}" if day.snippet else ""
            print(f"  {day.date}  {day.count} moment(s), {round(day.score * 100)}% positive{snippet}")

    if analytics.peak_time:
        print(f"\n⏰ Most Active: {analytics.peak_time}")

    print(f"\n📝 Summary")
    print(f"  {analytics.summary}")
    print(f"\n💬 \"{analytics.share_quote}\"")
    print()


def cmd_progress(args: List[str]):
    """Weekly and monthly progress across rituals, seeds and moments."""
    bundle, now, tz, config = load_context(args)
    analytics = ProgressAnalytics(bundle, now=now, config=config, tz=tz)

    if "--json" in args:
        print_json(analytics.to_dict())
        return

    print(f"\nProgress")
    print(f"As of: {analytics.now:%Y-%m-%d %H:%M}")
    print("=" * 60)

    week = analytics.week
    print(f"\n--- This Week {'-'*36}")
    print(f"  Ritual days: {week.ritual_days}")
    print(f"  Seed days:   {week.seed_days}")
    print(f"  Moments:     {week.moment_count}")
    print(f"  {analytics.week_narrative}")

    if bundle.active_member_rituals:
        print(f"\n--- Rituals {'-'*38}")
        for mr in bundle.active_member_rituals:
            stats = analytics.ritual_stats[mr.ritual_id]
            print(f"  {mr.name:<24} streak {stats.current_streak:3} | best {stats.best_streak:3} | 30d {stats.last30:3}")

    if bundle.anchors:
        print(f"\n--- Seeds {'-'*40}")
        for anchor in bundle.anchors:
            stats = analytics.anchor_stats[anchor.id]
            print(f"  {anchor.label:<24} streak {stats.current_streak:3} | best {stats.best_streak:3} | 30d {stats.last30:3}")

    print(f"\n--- Reflections {'-'*34}")
    print(f"  {analytics.mood_narrative}")
    print(f"  {analytics.moments_narrative}")
    print()


def cmd_seeds(args: List[str]):
    """Seed streaks and the 30-day grid."""
    bundle, now, tz, config = load_context(args)
    day = get_option(args, "--day")
    if day is not None:
        day = local_date_key(parse_date_key(day, field="--day"))

    analytics = SeedAnalytics(bundle, now=now, config=config, tz=tz)

    if "--json" in args:
        print_json(analytics.to_dict(day=day))
        return

    summary = analytics.summary
    print(f"\nSeeds")
    print(f"As of: {analytics.now:%Y-%m-%d %H:%M}")
    print("=" * 60)

    print(f"\n🌱 Growth")
    print(f"  Active seeds:         {summary['total_active']}")
    print(f"  Best current streak:  {summary['best_current_streak']} day(s)")
    print(f"  Days logged (30d):    {summary['total_last30']}")
    if analytics.most_consistent:
        print(f"  Most consistent: {analytics.most_consistent.label}")

    for title, anchors in (("Grow", analytics.grow_anchors), ("Let go", analytics.letgo_anchors)):
        if not anchors:
            continue
        print(f"\n--- {title} {'-'*(45 - len(title))}")
        for anchor in anchors:
            stats = analytics.anchor_stats[anchor.id]
            print(f"  {anchor.label:<24} streak {stats.current_streak:3} | best {stats.best_streak:3} | 30d {stats.last30:3}")

    day = day or analytics.today_key
    seeds = analytics.seeds_for_day(day)
    print(f"\n📅 {day}")
    if seeds:
        for entry in seeds:
            print(f"  {entry['anchor']['label']} x{entry['count']}")
    else:
        print("  No seeds logged")
    print()


def cmd_rituals(args: List[str]):
    """Ritual consistency and reflections."""
    bundle, now, tz, config = load_context(args)
    insights = RitualInsights(bundle, now=now, config=config, tz=tz)

    if "--json" in args:
        print_json(insights.to_dict())
        return

    print(f"\nRitual Insights")
    print(f"As of: {insights.now:%Y-%m-%d %H:%M}")
    print("=" * 60)

    print(f"\n✨ {insights.week_narrative.title}")
    print(f"  {insights.week_narrative.subtitle}")
    print(f"\n📈 {insights.month_narrative.title}")
    print(f"  {insights.month_narrative.subtitle}")

    if insights.rituals:
        print(f"\n--- Rituals {'-'*38}")
        for mr in insights.rituals:
            stats = insights.ritual_stats[mr.ritual_id]
            duration = f"{stats.avg_duration} min" if stats.avg_duration is not None else "-"
            print(f"  {mr.name:<22} {stats.completion_rate:3}% | streak {stats.current_streak:3} | best {stats.best_streak:3} | {duration}")

    print(f"\n💭 {insights.mood_reflection}")
    if insights.strongest_narrative:
        print(f"\n🏆 {insights.strongest_narrative}")
    print()


def cmd_report(args: List[str]):
    """Every screen's analytics as one JSON document."""
    bundle, now, tz, config = load_context(args)
    print_json(build_report(bundle, now=now, config=config, tz=tz))


# =============================================================================
# CONFIG COMMAND
# =============================================================================

def cmd_config(args: List[str]):
    """Validate environment configuration, or list the options."""
    if args and args[0] == "help":
        print_config_help()
        return

    result = validate_on_startup(exit_on_error=False)
    print("Current values:")
    for env_var, value in get_config_summary().items():
        print(f"  {env_var:<28} {value}")
    print()
    if not result.valid:
        sys.exit(1)


# =============================================================================
# MAIN
# =============================================================================

COMMANDS = {
    "moments": cmd_moments,
    "progress": cmd_progress,
    "seeds": cmd_seeds,
    "rituals": cmd_rituals,
    "report": cmd_report,
    "config": cmd_config,
}


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    cmd = sys.argv[1].lower()
    handler = COMMANDS.get(cmd)
    if handler is None:
        print(__doc__)
        sys.exit(1)

    setup_logging(level="WARNING")

    try:
        handler(sys.argv[2:])
    except BloomError as e:
        print(f"\n❌ Error: {e.user_message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
