"""Command-line interface for streaming island generation."""

import argparse
import logging
import sys
import time
import tomllib
from pathlib import Path

import numpy as np
import structlog

from ..types import TilePos

# ASCII glyph per kind code (see classification.kind_value)
_MAP_GLYPHS = np.array(list("~^.o#"))


def _parse_pos(text: str) -> TilePos:
    try:
        x, y = (int(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected X,Y, got {text!r}") from None
    return x, y


def _walk(start: TilePos, end: TilePos, steps: int) -> list[TilePos]:
    """Evenly spaced tile positions from start to end, inclusive."""
    if steps <= 1:
        return [end]
    xs = np.rint(np.linspace(start[0], end[0], steps)).astype(int)
    ys = np.rint(np.linspace(start[1], end[1], steps)).astype(int)
    return [(int(x), int(y)) for x, y in zip(xs, ys)]


def render_map(generator, center: TilePos, radius: int) -> str:
    """ASCII map of tile kinds around a position, north at the top."""
    from .classification import classify_heights

    cx, cy = center
    xs = np.arange(cx - radius, cx + radius + 1)
    ys = np.arange(cy - radius, cy + radius + 1)
    heights = generator.height_field.heights(xs, ys)
    codes = classify_heights(heights, generator.context.params)
    rows = ["".join(_MAP_GLYPHS[row]) for row in codes[::-1]]
    return "\n".join(rows)


def main() -> None:
    """CLI entry point for island generation."""
    parser = argparse.ArgumentParser(
        description="Stream procedural islands around a simulated player"
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Config name or path (default: built-in)"
    )
    parser.add_argument("--seed", type=str, default=None, help="World seed (overrides config)")
    parser.add_argument(
        "--start", type=_parse_pos, default=(0, 0), help="Start tile X,Y (default: 0,0)"
    )
    parser.add_argument(
        "--end", type=_parse_pos, default=(400, 0), help="End tile X,Y (default: 400,0)"
    )
    parser.add_argument(
        "--steps", type=int, default=100, help="Player positions along the walk (default: 100)"
    )
    parser.add_argument(
        "--view-distance", type=int, default=None, help="Ribbon radius in tiles (overrides config)"
    )
    parser.add_argument(
        "--workers", type=int, default=None, help="Worker threads, 0 = synchronous (overrides config)"
    )
    parser.add_argument(
        "--journal", type=str, default=None, help="Directory for Parquet generation journal"
    )
    parser.add_argument("--validate", action="store_true", help="Validate every island")
    parser.add_argument(
        "--map", type=int, default=0, metavar="RADIUS", help="Print an ASCII map around the end tile"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )

    # Import here to avoid slow startup for --help
    from pydantic import ValidationError

    from ..config import WorldGenConfig, find_config, load_config
    from ..exceptions import WorldGenError
    from ..journal import GenerationJournal
    from .generator import WorldGenerator

    try:
        config = load_config(find_config(args.config)) if args.config else WorldGenConfig()
    except (FileNotFoundError, tomllib.TOMLDecodeError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    updates: dict = {}
    if args.seed is not None:
        updates["seed"] = int(args.seed) if args.seed.lstrip("-").isdigit() else args.seed
    if args.view_distance is not None:
        updates["streaming"] = config.streaming.model_copy(
            update={"view_distance": args.view_distance}
        )
    if args.workers is not None:
        updates["pool"] = config.pool.model_copy(update={"max_workers": args.workers})
    if args.validate:
        updates["validate_islands"] = True
    config = config.model_copy(update=updates)

    journal = GenerationJournal(Path(args.journal)) if args.journal else None

    print(f"Seed {config.seed!r}: walking {args.start} -> {args.end} in {args.steps} steps")

    start_time = time.time()
    failures = 0
    try:
        with WorldGenerator(config, journal=journal) as generator:
            print(f"Biome: {generator.biome.name}")
            for pos in _walk(args.start, args.end, args.steps):
                tick = generator.tick(pos)
                failures += sum(1 for f in tick.failures if not f.will_retry)
            failures += sum(1 for f in generator.drain().failures if not f.will_retry)

            if args.map > 0:
                print()
                print(render_map(generator, args.end, args.map))
    except WorldGenError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if journal is not None:
            journal.close()

    gen_time = time.time() - start_time
    islands = generator.islands
    tiles = sum(island.tile_count for island in islands)

    print()
    print(f"Generation complete in {gen_time:.1f}s")
    print(f"Islands: {len(islands)} ({tiles:,} tiles)")
    print(f"Ribbon columns: {len(generator.ribbon)}")
    print(f"Duplicates discarded: {generator.duplicates_discarded}")
    print(f"Failed seeds: {failures}")


if __name__ == "__main__":
    main()
