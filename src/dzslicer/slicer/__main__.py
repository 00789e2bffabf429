"""CLI entry point for dzslicer."""

from __future__ import annotations

import logging
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

import click
from tqdm import tqdm

from dzslicer.config import (
    DEFAULT_OVERLAP,
    DEFAULT_PARALLEL_IMAGES,
    DEFAULT_QUALITY,
    DEFAULT_TILE_FORMAT,
    DEFAULT_TILE_SIZE,
    DEFAULT_TILE_WORKERS,
    IMAGE_EXTENSIONS,
    VIPS_CONCURRENCY,
)
from dzslicer.core.errors import DeepZoomError
from dzslicer.core.paths import PyramidPaths

logger = logging.getLogger(__name__)

from .backends import is_vips_available, set_vips_concurrency
from .pyramid import DeepZoomSlicer
from .worker import process_single_image


def is_image_file(path: Path) -> bool:
    """Check if a file has a supported image extension."""
    return path.suffix.lower() in IMAGE_EXTENSIONS


def find_image_files(path: Path) -> list[Path]:
    """Find all source images in a path (file or directory)."""
    path = Path(path)
    if path.is_file():
        if is_image_file(path):
            return [path]
        return []
    elif path.is_dir():
        # Use set to avoid duplicates on case-insensitive filesystems (Windows)
        files = set()
        for ext in IMAGE_EXTENSIONS:
            files.update(path.glob(f"*{ext}"))
            files.update(path.glob(f"*{ext.upper()}"))
        return sorted(files)
    return []


def _configure_logging(verbose: bool) -> None:
    """Configure root logging; WARNING by default so progress bars stay readable."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def _check_prerequisites() -> None:
    """Check that pyvips is available.

    Exits the process with an error message if not.
    """
    if not is_vips_available():
        click.echo(click.style(
            "Error: dzslicer requires pyvips. Install libvips and pyvips.",
            fg="red"
        ), err=True)
        sys.exit(1)


def _print_header(
    image_files: list[Path],
    output_dir: Path | None,
    tile_size: int,
    overlap: int,
    tile_format: str | None,
    quality: float,
) -> None:
    """Print the CLI banner with slicing parameters."""
    click.echo(click.style("Deep Zoom Slicer", fg="cyan", bold=True))
    click.echo(click.style("=" * 40, fg="cyan"))
    click.echo(f"Found {len(image_files)} image(s)")
    click.echo(f"Output directory: {output_dir or 'next to each image'}")
    fmt_label = tile_format or "source extension"
    click.echo(f"Tile size: {tile_size}px | Overlap: {overlap}px | {fmt_label} Q{quality:g}")
    click.echo(click.style(
        "Existing descriptors and tile directories will be overwritten", fg="yellow"
    ))
    click.echo()


def _split_output_collisions(
    image_files: list[Path], output_dir: Path | None
) -> tuple[list[Path], list[tuple[Path, str]]]:
    """Separate images whose descriptor and level tree would overwrite each other.

    ``photo.jpg`` and ``photo.png`` in one output directory both map to
    ``photo.xml``/``photo_files``. None of the colliding images are sliced.

    Returns:
        Tuple of (unique_files, errors)
    """
    by_output: dict[PyramidPaths, list[Path]] = {}
    for image_path in image_files:
        by_output.setdefault(PyramidPaths.for_image(image_path, output_dir), []).append(image_path)

    unique: list[Path] = []
    errors: list[tuple[Path, str]] = []
    for paths, group in by_output.items():
        if len(group) == 1:
            unique.append(group[0])
            continue
        names = ", ".join(p.name for p in group)
        for image_path in group:
            message = f"output {paths.descriptor_path.name} is shared by {names}"
            errors.append((image_path, message))
            click.echo(f"Error: {image_path.name}: {message}", err=True)
    return unique, errors


def _slice_images(
    image_files: list[Path],
    output_dir: Path | None,
    tile_size: int,
    overlap: int,
    tile_format: str | None,
    quality: float,
    workers: int,
    parallel_images: int,
    skip_complete: bool,
) -> tuple[int, int, list[tuple[Path, str]]]:
    """Slice images, in parallel processes when more than one is allowed.

    Returns:
        Tuple of (success_count, skipped_count, errors)
    """
    success_count = 0
    skipped_count = 0
    errors: list[tuple[Path, str]] = []

    def _record(image_path: Path, result: tuple[Path | None, str | None, bool]) -> None:
        nonlocal success_count, skipped_count
        _descriptor, error, was_skipped = result
        if error:
            errors.append((image_path, error))
            click.echo(f"\nError processing {image_path.name}: {error}", err=True)
        elif was_skipped:
            skipped_count += 1
        else:
            success_count += 1

    args = (output_dir, tile_size, overlap, tile_format, quality, workers, skip_complete)

    if parallel_images <= 1 or len(image_files) <= 1:
        for image_path in tqdm(image_files, desc="Slicing images"):
            _record(image_path, process_single_image(image_path, *args))
        return success_count, skipped_count, errors

    with ProcessPoolExecutor(
        max_workers=parallel_images,
        initializer=set_vips_concurrency,
        initargs=(VIPS_CONCURRENCY,),
    ) as executor:
        futures = {
            executor.submit(process_single_image, f, *args): f
            for f in image_files
        }

        with tqdm(total=len(image_files), desc="Slicing images") as pbar:
            for future in as_completed(futures):
                image_path = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    # Worker crashed; the next run's cleanup removes partial output
                    logger.error("Worker crashed processing %s: %s", image_path, e)
                    result = (None, f"worker crashed: {e}", False)
                _record(image_path, result)
                pbar.update(1)

    return success_count, skipped_count, errors


def _remove_images(
    image_files: list[Path], output_dir: Path | None
) -> tuple[int, list[tuple[Path, str]]]:
    """Remove artifacts for every image.

    Returns:
        Tuple of (removed_count, errors)
    """
    removed = 0
    errors: list[tuple[Path, str]] = []
    for image_path in image_files:
        try:
            slicer = DeepZoomSlicer(image_path, output_dir=output_dir)
            if slicer.remove_artifacts():
                removed += 1
                click.echo(f"Removed {slicer.descriptor_path.name} and {slicer.levels_root_dir.name}")
            else:
                click.echo(f"Nothing to remove for {image_path.name}")
        except (DeepZoomError, OSError) as e:
            errors.append((image_path, str(e)))
    return removed, errors


def _print_summary(
    success_count: int,
    skipped_count: int,
    errors: list[tuple[Path, str]],
    verb: str = "sliced",
) -> None:
    """Print the colored summary and exit with error if any failures."""
    click.echo()
    click.echo(click.style("=" * 40, fg="cyan"))

    parts = []
    if success_count > 0:
        parts.append(click.style(f"{success_count} {verb}", fg="green"))
    if skipped_count > 0:
        parts.append(click.style(f"{skipped_count} skipped", fg="cyan"))
    if errors:
        parts.append(click.style(f"{len(errors)} failed", fg="red"))

    summary = ", ".join(parts) if parts else "Nothing to do"
    click.echo(click.style("Completed: ", bold=True) + summary)

    if errors:
        click.echo()
        click.echo(click.style("Failed images:", fg="red"))
        for path, error in errors:
            click.echo(f"  {path.name}: {error}")
        sys.exit(1)


@click.command()
@click.argument("input_path", type=click.Path(exists=True))
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory (default: next to each source image)",
)
@click.option(
    "--tile-size",
    "-t",
    type=click.IntRange(min=1),
    default=DEFAULT_TILE_SIZE,
    help=f"Tile size in pixels without overlap (default: {DEFAULT_TILE_SIZE})",
)
@click.option(
    "--overlap",
    type=click.IntRange(0, 10),
    default=DEFAULT_OVERLAP,
    help=f"Overlap per tile side in pixels (default: {DEFAULT_OVERLAP}, range: 0-10)",
)
@click.option(
    "--format",
    "-f",
    "tile_format",
    default=DEFAULT_TILE_FORMAT,
    help=f"Tile format/extension (default: {DEFAULT_TILE_FORMAT})",
)
@click.option(
    "--keep-format",
    is_flag=True,
    help="Encode tiles with the source image's extension",
)
@click.option(
    "--quality",
    "-q",
    type=click.FloatRange(0, 100),
    default=DEFAULT_QUALITY,
    help=f"Encode quality, 0-1 fraction or 0-100 (default: {DEFAULT_QUALITY})",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=DEFAULT_TILE_WORKERS,
    help=f"Threads writing tiles within a level (default: {DEFAULT_TILE_WORKERS})",
)
@click.option(
    "--parallel-images",
    "-p",
    type=click.IntRange(min=1),
    default=DEFAULT_PARALLEL_IMAGES,
    help=f"Slice multiple images in parallel (default: {DEFAULT_PARALLEL_IMAGES})",
)
@click.option(
    "--skip-complete",
    is_flag=True,
    help="Skip images whose pyramid is already complete",
)
@click.option(
    "--remove",
    is_flag=True,
    help="Only remove previously generated descriptors and tiles",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    input_path: str,
    output: str | None,
    tile_size: int,
    overlap: int,
    tile_format: str,
    keep_format: bool,
    quality: float,
    workers: int,
    parallel_images: int,
    skip_complete: bool,
    remove: bool,
    verbose: bool,
) -> None:
    """Slice images into Deep Zoom tile pyramids.

    INPUT_PATH can be a single image or a directory containing images.
    For each image NAME.EXT this writes NAME.xml and NAME_files/ into the
    output directory, replacing any previous results.

    Examples:

        # Slice a single image next to itself
        python -m dzslicer photo.jpg

        # Slice a directory into ./tiles with PNG tiles
        python -m dzslicer ./images/ -o ./tiles/ -f png

        # Custom tile geometry
        python -m dzslicer photo.jpg -t 256 --overlap 4 -q 0.8

        # Remove generated files
        python -m dzslicer photo.jpg --remove
    """
    _configure_logging(verbose)

    input_path = Path(input_path)
    output_dir = Path(output) if output else None

    image_files = find_image_files(input_path)
    if not image_files:
        click.echo(f"No images found in {input_path}", err=True)
        sys.exit(1)

    if remove:
        removed, errors = _remove_images(image_files, output_dir)
        _print_summary(removed, 0, errors, verb="removed")
        return

    _check_prerequisites()
    effective_format = None if keep_format else tile_format
    _print_header(image_files, output_dir, tile_size, overlap, effective_format, quality)

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    set_vips_concurrency(VIPS_CONCURRENCY)

    image_files, collisions = _split_output_collisions(image_files, output_dir)
    success, skipped, errors = _slice_images(
        image_files,
        output_dir,
        tile_size,
        overlap,
        effective_format,
        quality,
        workers,
        parallel_images,
        skip_complete,
    )
    _print_summary(success, skipped, collisions + errors)


if __name__ == "__main__":
    main()
