"""Group rides that share a location for map display.

Grouping is a greedy single pass over the rides in the order given. Each
cluster's centroid is fixed at its first member's coordinates and never
recomputed, so the result depends only on input order and is free of side
effects. A ride joins the first cluster, in creation order, whose centroid
lies strictly closer than the tolerance; it is not necessarily the nearest
one. There is no re-clustering pass, so the grouping is not globally optimal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ridelog.config import DEFAULT_CLUSTER_TOLERANCE
from ridelog.models.ride import Location, Ride

DEFAULT_TOLERANCE = DEFAULT_CLUSTER_TOLERANCE


@dataclass
class RideCluster:
    """Rides displayed under one map marker."""

    centroid: Location
    members: list[Ride] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def is_single(self) -> bool:
        return len(self.members) == 1


def cluster_rides(
    rides: Iterable[Ride], tolerance: float = DEFAULT_TOLERANCE
) -> list[RideCluster]:
    """Group rides by proximity.

    Args:
        rides: Rides in display order.
        tolerance: Degree-space distance below which a ride joins a cluster.

    Returns:
        Clusters in creation order.

    Raises:
        ValueError: If tolerance is not positive.
    """
    if not tolerance > 0:
        raise ValueError(f"Tolerance must be positive, got {tolerance}")

    clusters: list[RideCluster] = []
    for ride in rides:
        for cluster in clusters:
            if cluster.centroid.distance_to(ride.location) < tolerance:
                cluster.members.append(ride)
                break
        else:
            clusters.append(RideCluster(centroid=ride.location, members=[ride]))
    return clusters
