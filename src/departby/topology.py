"""Red Line stop topology: the shared trunk plus one branch tail."""

from typing import List, Optional

from .models import Stop

# Sequences follow the southbound stop order reported by vehicles.
RED_LINE_TRUNK = (
    Stop("place-alfcl", "Alewife", "Alewife", 10),
    Stop("place-davis", "Davis", "Davis", 20),
    Stop("place-portr", "Porter", "Porter", 30),
    Stop("place-hrsq", "Harvard", "Harvard", 40),
    Stop("place-cntsq", "Central", "Central", 50),
    Stop("place-knncl", "Kendall/MIT", "Kendall", 60),
    Stop("place-chmnl", "Charles/MGH", "Charles", 70),
    Stop("place-pktrm", "Park Street", "Park", 80),
    Stop("place-dwnxg", "Downtown Crossing", "Downtown", 90),
    Stop("place-sstat", "South Station", "South Sta", 100),
    Stop("place-brdwy", "Broadway", "Broadway", 110),
    Stop("place-andrw", "Andrew", "Andrew", 120),
    Stop("place-jfk", "JFK/UMass", "JFK/UMass", 130),
)

ASHMONT_BRANCH = (
    Stop("place-shmnl", "Savin Hill", "Savin Hill", 140),
    Stop("place-fldcr", "Fields Corner", "Fields Cnr", 150),
    Stop("place-smmnl", "Shawmut", "Shawmut", 160),
    Stop("place-asmnl", "Ashmont", "Ashmont", 170),
)

BRAINTREE_BRANCH = (
    Stop("place-nqncy", "North Quincy", "N Quincy", 140),
    Stop("place-wlsta", "Wollaston", "Wollaston", 150),
    Stop("place-qnctr", "Quincy Center", "Q Center", 160),
    Stop("place-qamnl", "Quincy Adams", "Q Adams", 170),
    Stop("place-brntn", "Braintree", "Braintree", 180),
)

BRANCHES = {
    "Ashmont": ASHMONT_BRANCH,
    "Braintree": BRAINTREE_BRANCH,
}

DEFAULT_BRANCH = "Braintree"


def get_stops_for_branch(branch: Optional[str]) -> List[Stop]:
    """
    Get the full stop list for a branch.

    Unknown or missing branches (including Alewife-bound trips, which run the
    trunk only) fall back to the Braintree topology.
    """
    tail = BRANCHES.get(branch, BRANCHES[DEFAULT_BRANCH])
    return list(RED_LINE_TRUNK + tail)


def find_stop(stop_id: str) -> Optional[Stop]:
    """Find a stop by id anywhere on the line."""
    for stop in RED_LINE_TRUNK + ASHMONT_BRANCH + BRAINTREE_BRANCH:
        if stop.id == stop_id:
            return stop
    return None


def branches_serving(stop_id: str) -> List[str]:
    """Return the branch names whose topology contains the stop."""
    return [
        name for name in BRANCHES
        if any(stop.id == stop_id for stop in get_stops_for_branch(name))
    ]
