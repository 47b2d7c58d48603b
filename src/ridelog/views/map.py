"""Map payloads for ridelog.

Turns ride clusters into data a Leaflet front end can draw: a center and
zoom for the initial view and a GeoJSON FeatureCollection with one point
per cluster. Tile rendering stays with the front end.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ridelog.services.clustering import RideCluster

if TYPE_CHECKING:
    from ridelog.models.ride import Ride
    from ridelog.services.repository import PhotoRepository

# London, shown when there is nothing to center on
DEFAULT_CENTER = (51.505, -0.09)
SINGLE_RIDE_ZOOM = 10
OVERVIEW_ZOOM = 6


def map_center(rides: list[Ride]) -> tuple[float, float]:
    """Mean position of all rides, or the default center when empty."""
    if not rides:
        return DEFAULT_CENTER
    lat = sum(r.location.lat for r in rides) / len(rides)
    lng = sum(r.location.lng for r in rides) / len(rides)
    return (lat, lng)


def map_zoom(rides: list[Ride]) -> int:
    """Close-up for a single ride, overview otherwise."""
    return SINGLE_RIDE_ZOOM if len(rides) == 1 else OVERVIEW_ZOOM


def _ride_summary(ride: Ride, photos: PhotoRepository | None) -> dict[str, Any]:
    photo_count = len(photos.get_by_ids(ride.photo_ids)) if photos is not None else len(ride.photo_ids)
    return {
        "id": ride.id,
        "name": ride.name,
        "date": ride.date.isoformat(),
        "distance_km": ride.distance,
        "elevation_m": ride.elevation,
        "notes": ride.notes,
        "location_name": ride.location_name,
        "photo_count": photo_count,
    }


def build_map_data(
    clusters: list[RideCluster],
    photos: PhotoRepository | None = None,
) -> dict[str, Any]:
    """Build the map payload for a set of clusters.

    Args:
        clusters: Output of `cluster_rides`.
        photos: Photo repository used to count resolvable photos per ride.

    Returns:
        Dictionary with ``center``, ``zoom``, ``ride_count``,
        ``location_count`` and a GeoJSON ``clusters`` FeatureCollection.
    """
    rides = [ride for cluster in clusters for ride in cluster.members]
    center = map_center(rides)

    features = []
    for cluster in clusters:
        features.append(
            {
                "type": "Feature",
                # GeoJSON orders coordinates as [lng, lat]
                "geometry": {
                    "type": "Point",
                    "coordinates": [cluster.centroid.lng, cluster.centroid.lat],
                },
                "properties": {
                    "count": cluster.count,
                    "is_cluster": not cluster.is_single,
                    "location_name": next(
                        (r.location_name for r in cluster.members if r.location_name), None
                    ),
                    "rides": [_ride_summary(r, photos) for r in cluster.members],
                },
            }
        )

    return {
        "center": {"lat": center[0], "lng": center[1]},
        "zoom": map_zoom(rides),
        "ride_count": len(rides),
        "location_count": len(clusters),
        "clusters": {"type": "FeatureCollection", "features": features},
    }


def write_map_data(data: dict[str, Any], output_path: Path) -> Path:
    """Write a map payload as JSON.

    Args:
        data: Output of `build_map_data`.
        output_path: Destination file.

    Returns:
        Path to the written file.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return output_path


def format_clusters(clusters: list[RideCluster]) -> str:
    """Plain-text listing of clusters for the terminal."""
    if not clusters:
        return "No rides to show"

    ride_total = sum(c.count for c in clusters)
    lines = [
        f"{ride_total} ride{'s' if ride_total != 1 else ''} • "
        f"{len(clusters)} location{'s' if len(clusters) != 1 else ''}",
        "",
    ]
    for cluster in clusters:
        header = f"({cluster.centroid.lat:.4f}, {cluster.centroid.lng:.4f})"
        if not cluster.is_single:
            header += f"  {cluster.count} rides at this location"
        lines.append(header)
        for ride in cluster.members:
            lines.append(
                f"  - {ride.date.isoformat()}  {ride.name}  "
                f"{ride.distance:g} km, {ride.elevation:g} m"
            )
    return "\n".join(lines)
