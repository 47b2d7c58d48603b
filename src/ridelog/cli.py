"""Command-line interface for ridelog.

Provides CLI commands for recording rides, managing photo metadata and
grouping rides for the map, against the REST backend or, when it is down,
the offline cache.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from ridelog import __version__
from ridelog.config import DEFAULT_CONFIG_PATH, load_config
from ridelog.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from ridelog.config import Config
    from ridelog.models.photo import Photo
    from ridelog.models.ride import Ride
    from ridelog.services.journal import RideJournal


class JSONOutput:
    """Helper for JSON output formatting."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value in the output."""
        self._data[key] = value

    def update(self, data: dict[str, Any]) -> None:
        """Update with multiple values."""
        self._data.update(data)

    def output(self) -> None:
        """Print JSON output if enabled."""
        if self.enabled:
            click.echo(json.dumps(self._data, indent=2, default=str))


# Custom context class to hold shared state
class Context:
    """CLI context holding shared configuration and state."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False
        self.output: JSONOutput = JSONOutput()
        self._journal: RideJournal | None = None

    def log(self, message: str, level: int = 0) -> None:
        """Log a message if verbosity allows.

        Args:
            message: Message to log.
            level: Required verbosity level (0=normal, 1=-v, 2=-vv).
        """
        if self.json_output:
            return
        if self.quiet and level == 0:
            return
        if level <= self.verbose or level == 0:
            click.echo(message)

    def warn(self, message: str) -> None:
        """Show a non-fatal advisory."""
        if self.json_output:
            return
        click.echo(f"Warning: {message}", err=True)

    def error(self, message: str) -> None:
        """Log an error message."""
        if self.json_output:
            self.output.set("error", message)
            self.output.set("status", "error")
        else:
            click.echo(f"Error: {message}", err=True)

    def fail(self, message: str, code: int = 1) -> NoReturn:
        """Report an error and exit."""
        self.error(message)
        if self.json_output:
            self.output.output()
        sys.exit(code)

    def journal(self) -> RideJournal:
        """Build the journal once and load both collections.

        Degraded loads are shown as warnings and recorded under
        ``advisories`` in JSON output.
        """
        if self._journal is not None:
            return self._journal

        from ridelog.lib.logging import setup_logging
        from ridelog.services.journal import RideJournal

        if self.config is None:
            self.fail("Configuration not loaded")

        journal = RideJournal(self.config)
        setup_logging(
            journal.data_dir,
            verbose=self.verbose,
            quiet=self.quiet,
            console=not self.json_output,
        )

        advisories = journal.load()
        for advisory in advisories:
            self.warn(advisory)
        self.output.set("advisories", advisories)
        self.output.set("offline", journal.is_offline)
        self._journal = journal
        return journal


pass_context = click.make_pass_decorator(Context, ensure=True)


def _format_ride(ride: Ride, photos: list[Photo] | None = None) -> str:
    lines = [
        f"{ride.name}  [{ride.id}]",
        f"  Date:      {ride.date.isoformat()}",
        f"  Location:  {ride.location.lat:.4f}, {ride.location.lng:.4f}"
        + (f"  ({ride.location_name})" if ride.location_name else ""),
        f"  Distance:  {ride.distance:g} km",
        f"  Elevation: {ride.elevation:g} m",
    ]
    if ride.notes:
        lines.append(f"  Notes:     {ride.notes}")
    if photos:
        lines.append(f"  Photos:    {', '.join(p.display_name for p in photos)}")
    return "\n".join(lines)


def _format_photo(photo: Photo) -> str:
    taken = photo.date_taken.date().isoformat() if photo.date_taken else "unknown date"
    line = f"[{photo.id}] {photo.display_name}  {taken}"
    if photo.description:
        line += f"  {photo.description}"
    if photo.tags:
        line += f"  #{' #'.join(sorted(photo.tags))}"
    return line


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
)
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Data directory path (default: ./data)",
)
@click.option(
    "--api-url",
    default=None,
    help="Backend API base URL (default: http://localhost:5000/api)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-error output",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format",
)
@click.version_option(version=__version__, prog_name="ridelog")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    data_dir: Path | None,
    api_url: str | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Personal ride journal.

    Record rides and photos against the journal backend, with an offline
    cache when the backend is unreachable, and group rides for the map.
    """
    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output
    ctx.output = JSONOutput(json_output)

    # Load configuration
    ctx.config = load_config(config_path)

    # Command-line overrides
    if data_dir is not None:
        ctx.config.data.directory = data_dir
    if api_url is not None:
        ctx.config.api.url = api_url


@main.command()
@pass_context
def status(ctx: Context) -> None:
    """Show backend reachability and whether the store is offline."""
    journal = ctx.journal()
    result = journal.status()

    if ctx.json_output:
        ctx.output.update({"status": "success", **result.to_dict()})
        ctx.output.output()
        return

    ctx.log(f"Backend:  {result.api_url} ({'reachable' if result.backend_reachable else 'unreachable'})")
    ctx.log(f"Rides:    {result.ride_count} ({result.rides_mode})")
    ctx.log(f"Photos:   {result.photo_count} ({result.photos_mode})")


@main.group()
def rides() -> None:
    """Record and browse rides."""
    pass


@rides.command(name="list")
@click.option(
    "--year",
    type=int,
    help="Only show rides from this year",
)
@pass_context
def list_rides(ctx: Context, year: int | None) -> None:
    """List rides in the order they were recorded."""
    journal = ctx.journal()
    records = journal.rides.for_year(year) if year is not None else journal.rides.records

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "years": journal.rides.available_years(),
            "rides": [r.to_dict() for r in records],
        })
        ctx.output.output()
        return

    if not records:
        ctx.log("No rides recorded yet" if year is None else f"No rides in {year}")
        return
    for ride in records:
        ctx.log(
            f"[{ride.id}] {ride.date.isoformat()}  {ride.name}  "
            f"{ride.distance:g} km, {ride.elevation:g} m"
        )


@rides.command(name="show")
@click.argument("ride_id")
@pass_context
def show_ride(ctx: Context, ride_id: str) -> None:
    """Show one ride with its photos."""
    journal = ctx.journal()
    ride = journal.rides.get_by_id(ride_id)
    if ride is None:
        ctx.fail(f"Ride not found: {ride_id}", code=2)

    photos = journal.rides.photos_for(ride)
    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "ride": ride.to_dict(),
            "photos": [p.to_dict() for p in photos],
        })
        ctx.output.output()
    else:
        ctx.log(_format_ride(ride, photos))


def _ride_fields(
    name: str | None,
    date: Any | None,
    lat: float | None,
    lng: float | None,
    distance: float | None,
    elevation: float | None,
    notes: str | None,
    location_name: str | None,
    photo_ids: tuple[str, ...],
) -> dict[str, Any]:
    """Collect the ride fields given on the command line, in wire shape."""
    fields: dict[str, Any] = {}
    if name is not None:
        fields["name"] = name
    if date is not None:
        fields["date"] = date.date().isoformat()
    if lat is not None or lng is not None:
        fields["location"] = {"lat": lat, "lng": lng}
    if distance is not None:
        fields["distance"] = distance
    if elevation is not None:
        fields["elevation"] = elevation
    if notes is not None:
        fields["notes"] = notes
    if location_name is not None:
        fields["locationName"] = location_name
    if photo_ids:
        fields["photoIds"] = [int(p) if p.isdigit() else p for p in photo_ids]
    return fields


def _ride_options(func: Any) -> Any:
    """Options shared by `rides add` and `rides update`."""
    options = [
        click.option("--name", help="Ride name"),
        click.option("--date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Ride date (YYYY-MM-DD)"),
        click.option("--lat", type=float, help="Latitude in degrees"),
        click.option("--lng", type=float, help="Longitude in degrees"),
        click.option("--distance", type=float, help="Distance in km"),
        click.option("--elevation", type=float, help="Elevation gain in m"),
        click.option("--notes", help="Free-form notes"),
        click.option("--location-name", help="Place label shown on the map"),
        click.option("--photo", "photo_ids", multiple=True, help="Attach a photo id (repeatable)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@rides.command(name="add")
@_ride_options
@pass_context
def add_ride(ctx: Context, **fields: Any) -> None:
    """Record a new ride."""
    journal = ctx.journal()
    draft = _ride_fields(**fields)
    draft.setdefault("location", {"lat": None, "lng": None})
    was_offline = journal.rides.is_offline

    try:
        ride = journal.rides.create(draft)
    except ValidationError as e:
        ctx.fail(f"Invalid ride: {e}", code=2)
    except Exception as e:
        ctx.fail(f"Adding ride failed: {e}")

    if journal.rides.is_offline and not was_offline and journal.rides.last_error:
        ctx.warn(journal.rides.last_error)
    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "offline": journal.rides.is_offline,
            "advisory": journal.rides.last_error,
            "ride": ride.to_dict(),
        })
        ctx.output.output()
    else:
        ctx.log(f"Added ride {ride.name} [{ride.id}]")


@rides.command(name="update")
@click.argument("ride_id")
@_ride_options
@pass_context
def update_ride(ctx: Context, ride_id: str, **fields: Any) -> None:
    """Change fields of an existing ride."""
    journal = ctx.journal()
    changes = _ride_fields(**fields)
    existing = journal.rides.get_by_id(ride_id)
    if existing is not None and "location" in changes:
        # Keep the coordinate that was not given
        location = existing.location.to_dict()
        location.update({k: v for k, v in changes["location"].items() if v is not None})
        changes["location"] = location

    try:
        ride = journal.rides.update(changes, record_id=ride_id)
    except (NotFoundError, ValidationError) as e:
        ctx.fail(str(e), code=2)
    except Exception as e:
        ctx.fail(f"Updating ride failed: {e}")

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "offline": journal.rides.is_offline,
            "advisory": journal.rides.last_error,
            "ride": ride.to_dict(),
        })
        ctx.output.output()
    else:
        ctx.log(f"Updated ride {ride.name} [{ride.id}]")


@rides.command(name="delete")
@click.argument("ride_id")
@pass_context
def delete_ride(ctx: Context, ride_id: str) -> None:
    """Delete a ride. Its photos are kept."""
    journal = ctx.journal()
    try:
        journal.rides.delete(ride_id)
    except NotFoundError as e:
        ctx.fail(str(e), code=2)
    except Exception as e:
        ctx.fail(f"Deleting ride failed: {e}")

    if ctx.json_output:
        ctx.output.update({"status": "success", "deleted": ride_id})
        ctx.output.output()
    else:
        ctx.log(f"Deleted ride {ride_id}")


@rides.command(name="clusters")
@click.option(
    "--tolerance",
    type=float,
    default=None,
    help="Grouping distance in degrees (default: 0.001, about 100 m)",
)
@click.option(
    "--year",
    type=int,
    help="Only group rides from this year",
)
@pass_context
def clusters_cmd(ctx: Context, tolerance: float | None, year: int | None) -> None:
    """Group rides that share a location."""
    from ridelog.views.map import build_map_data, format_clusters

    journal = ctx.journal()
    records = journal.rides.for_year(year) if year is not None else None
    try:
        clusters = journal.clusters(records, tolerance=tolerance)
    except ValueError as e:
        ctx.fail(str(e), code=2)

    if ctx.json_output:
        ctx.output.update({"status": "success", **build_map_data(clusters, journal.photos)})
        ctx.output.output()
    else:
        ctx.log(format_clusters(clusters))


@rides.command(name="map")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output GeoJSON payload file (default: stdout)",
)
@click.option(
    "--tolerance",
    type=float,
    default=None,
    help="Grouping distance in degrees",
)
@pass_context
def map_cmd(ctx: Context, output: Path | None, tolerance: float | None) -> None:
    """Write the map payload: view center, zoom and ride clusters."""
    from ridelog.views.map import build_map_data, write_map_data

    journal = ctx.journal()
    try:
        data = build_map_data(journal.clusters(tolerance=tolerance), journal.photos)
    except ValueError as e:
        ctx.fail(str(e), code=2)

    if output:
        try:
            write_map_data(data, output)
        except OSError as e:
            ctx.fail(f"Map export failed: {e}")
        if ctx.json_output:
            ctx.output.update({"status": "success", "output": str(output)})
            ctx.output.output()
        else:
            ctx.log(f"Map data saved to {output}")
    else:
        click.echo(json.dumps(data, indent=2, default=str))


@main.group()
def photos() -> None:
    """Manage photo metadata."""
    pass


@photos.command(name="list")
@click.option(
    "--year",
    type=int,
    help="Only show photos taken in this year",
)
@click.option(
    "--search",
    help="Match text in names, description and tags",
)
@pass_context
def list_photos(ctx: Context, year: int | None, search: str | None) -> None:
    """List photos."""
    journal = ctx.journal()
    records = journal.photos.search(search) if search else journal.photos.records
    if year is not None:
        in_year = {id(p) for p in journal.photos.for_year(year)}
        records = [p for p in records if id(p) in in_year]

    if ctx.json_output:
        ctx.output.update({"status": "success", "photos": [p.to_dict() for p in records]})
        ctx.output.output()
        return

    if not records:
        ctx.log("No photos found")
        return
    for photo in records:
        ctx.log(_format_photo(photo))


@photos.command(name="years")
@pass_context
def photo_years(ctx: Context) -> None:
    """List the years photos were taken in."""
    journal = ctx.journal()
    years = journal.photos.available_years()

    if ctx.json_output:
        ctx.output.update({"status": "success", "years": years})
        ctx.output.output()
    else:
        for year in years:
            ctx.log(str(year))


@photos.command(name="add")
@click.option("--filename", required=True, help="Stored file name")
@click.option("--original-name", help="Name of the file as uploaded")
@click.option("--url", help="Storage URL")
@click.option("--date-taken", type=click.DateTime(), help="When the photo was taken")
@click.option("--description", help="Caption")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@pass_context
def add_photo(
    ctx: Context,
    filename: str,
    original_name: str | None,
    url: str | None,
    date_taken: Any | None,
    description: str | None,
    tags: tuple[str, ...],
) -> None:
    """Register metadata for an already uploaded photo."""
    journal = ctx.journal()
    draft: dict[str, Any] = {
        "filename": filename,
        "originalName": original_name,
        "url": url,
        "description": description,
        "tags": list(tags),
    }
    if date_taken is not None:
        draft["dateTaken"] = date_taken.isoformat()

    try:
        photo = journal.photos.create(draft)
    except ValidationError as e:
        ctx.fail(f"Invalid photo: {e}", code=2)
    except Exception as e:
        ctx.fail(f"Adding photo failed: {e}")

    if ctx.json_output:
        ctx.output.update({
            "status": "success",
            "offline": journal.photos.is_offline,
            "photo": photo.to_dict(),
        })
        ctx.output.output()
    else:
        ctx.log(f"Added photo {photo.display_name} [{photo.id}]")


@photos.command(name="update")
@click.argument("photo_id")
@click.option("--description", help="Caption")
@click.option("--tag", "tags", multiple=True, help="Replace tags (repeatable)")
@click.option("--date-taken", type=click.DateTime(), help="When the photo was taken")
@pass_context
def update_photo(
    ctx: Context,
    photo_id: str,
    description: str | None,
    tags: tuple[str, ...],
    date_taken: Any | None,
) -> None:
    """Change a photo's description, tags or date."""
    journal = ctx.journal()
    changes: dict[str, Any] = {}
    if description is not None:
        changes["description"] = description
    if tags:
        changes["tags"] = list(tags)
    if date_taken is not None:
        changes["dateTaken"] = date_taken.isoformat()

    try:
        photo = journal.photos.update(changes, record_id=photo_id)
    except (NotFoundError, ValidationError) as e:
        ctx.fail(str(e), code=2)
    except Exception as e:
        ctx.fail(f"Updating photo failed: {e}")

    if ctx.json_output:
        ctx.output.update({"status": "success", "photo": photo.to_dict()})
        ctx.output.output()
    else:
        ctx.log(f"Updated photo {photo.display_name} [{photo.id}]")


@photos.command(name="delete")
@click.argument("photo_id")
@pass_context
def delete_photo(ctx: Context, photo_id: str) -> None:
    """Delete a photo. Rides referencing it keep the reference."""
    journal = ctx.journal()
    try:
        journal.photos.delete(photo_id)
    except NotFoundError as e:
        ctx.fail(str(e), code=2)
    except Exception as e:
        ctx.fail(f"Deleting photo failed: {e}")

    if ctx.json_output:
        ctx.output.update({"status": "success", "deleted": photo_id})
        ctx.output.output()
    else:
        ctx.log(f"Deleted photo {photo_id}")


if __name__ == "__main__":
    main()
