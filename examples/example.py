"""Example usage of DepartureAdvisor."""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import departby
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from departby.advisor import DepartureAdvisor
from departby.models import Advisory, Urgency
from departby.route_map import render_route
from departby.settings import SettingsStore, SettingsValidationError
from departby.topology import find_stop

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

HEADLINES = {
    Urgency.NORMAL: "Next optimal departure",
    Urgency.LEAVING_SOON: "Leave immediately!",
    Urgency.NOW: "NOW!",
    Urgency.MISSED: "You likely missed this one",
}


def print_advisory(advisory: Advisory, station_name: str) -> None:
    """Print one refresh of the dashboard."""
    print(f"\n{'='*70}")
    print(f"{station_name} - Red Line")
    print(f"{'='*70}")

    if advisory.status == "loading":
        print("Loading predictions...")
        return
    if advisory.status == "unavailable":
        print("Unable to load predictions. Check your connection or try again later.")
        return
    if advisory.status == "empty":
        print("No upcoming trains in your selected direction.")
        return

    if advisory.error:
        print(f"(Showing last known times: {advisory.error})")

    hero = advisory.hero
    countdown = advisory.countdown
    print(f"\n{HEADLINES[advisory.urgency]}")
    print(f"Leave by {hero.depart_by_time.astimezone():%I:%M %p}", end="")
    if not countdown.is_expired:
        print(f"  ({countdown.minutes}:{countdown.seconds:02d})")
    else:
        print()
    if hero.branch:
        print(f"Train to {hero.branch}")

    for branch, position in advisory.route_maps.items():
        print(f"\n{branch} branch:")
        print(f"  {render_route(position)}")

    if advisory.upcoming:
        print("\nLater departures:")
        for prediction in advisory.upcoming:
            minutes = prediction.minutes_until_departure
            label = "Departed" if minutes <= 0 else f"in {minutes} min"
            print(f"  Leave by {prediction.depart_by_time.astimezone():%I:%M %p}  {label}")

    if advisory.last_updated:
        print(f"\nUpdated: {advisory.last_updated.astimezone():%H:%M:%S}")


def main():
    parser = argparse.ArgumentParser(description="When should I leave for the Red Line?")
    parser.add_argument("--settings", help="JSON file to keep settings in")
    parser.add_argument("--walk", type=int, help="Walk time to the station in minutes")
    parser.add_argument("--station", help="Station ID (e.g., place-jfk)")
    parser.add_argument("--direction", type=int, help="0 southbound, 1 northbound")
    parser.add_argument("--poll", type=int, default=30, help="Seconds between polls (15-30)")
    parser.add_argument("--once", action="store_true", help="Print one refresh and exit")
    args = parser.parse_args()

    advisor = DepartureAdvisor(settings_store=SettingsStore(args.settings))

    updates = {}
    if args.walk is not None:
        updates["walk_time_minutes"] = args.walk
    if args.station:
        updates["station_id"] = args.station
    if args.direction is not None:
        updates["direction_id"] = args.direction
    if updates:
        try:
            advisor.update_settings(updates)
        except SettingsValidationError as e:
            print(f"Invalid setting {e.field}: {e.message}")
            sys.exit(1)

    stop = find_stop(advisor.settings.station_id)
    station_name = stop.name if stop else advisor.settings.station_id

    if args.once:
        advisor.refresh()
        print_advisory(advisor.build_advisory(), station_name)
        return

    try:
        advisor.run(lambda advisory: print_advisory(advisory, station_name), poll_interval=args.poll)
    except KeyboardInterrupt:
        print("\n\nGoodbye!")


if __name__ == "__main__":
    main()
