"""CLI entry point for running an erosion simulation."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import shutil
import tempfile
import time

import numpy as np
from erosion.config import (
    CAPACITY,
    DEFAULT_SIZE,
    DEPOSITION,
    EROSION,
    EVAPORATION,
    INERTIA,
    MINSLOPE,
    VARIANTS,
    ConfigError,
    ErosionConfig,
    RainConfig,
    SimulationConfig,
    SourceConfig,
    validate_config,
)
from erosion.derive import height_preview_u16, hillshade, surface_preview_rgb
from erosion.io import (
    clean_output_dir,
    move_tree_contents,
    resolve_output_dir,
    write_height_npy,
    write_json,
    write_png_rgb,
    write_png_u16,
    write_png_u8,
)
from erosion.metrics import terrain_metrics
from erosion.simulation import Simulation, TickStats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Droplet-based hydraulic erosion simulator")
    parser.add_argument("--seed", type=int, required=True, help="Integer seed for terrain, sources and rain")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Grid side length in cells")
    parser.add_argument("--ticks", type=int, default=1000, help="Number of simulation ticks")
    parser.add_argument("--rain", type=int, default=RainConfig.droplets_per_tick, help="Rain droplets per tick")
    parser.add_argument(
        "--source-attempts",
        type=int,
        default=SourceConfig.attempts,
        help="Candidate positions sampled when placing sources",
    )
    parser.add_argument("--source-flux", type=float, default=SourceConfig.flux, help="Droplets per tick per source")
    parser.add_argument(
        "--min-source-elevation",
        type=float,
        default=SourceConfig.min_elevation,
        help="Sources are only placed on cells higher than this",
    )
    parser.add_argument(
        "--variant",
        choices=VARIANTS,
        default=ErosionConfig.variant,
        help="Droplet update rule",
    )
    parser.add_argument("--evaporation", type=float, default=EVAPORATION)
    parser.add_argument("--inertia", type=float, default=INERTIA)
    parser.add_argument("--min-slope", type=float, default=MINSLOPE)
    parser.add_argument("--capacity", type=float, default=CAPACITY)
    parser.add_argument("--deposition", type=float, default=DEPOSITION)
    parser.add_argument("--erosion", type=float, default=EROSION)
    parser.add_argument(
        "--frame-every",
        type=int,
        default=0,
        help="Write a surface preview frame every N ticks (0 disables frames)",
    )
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--verbose", action="store_true", help="Log simulation progress to stderr")
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    return SimulationConfig(
        size=args.size,
        erosion=ErosionConfig(
            evaporation=args.evaporation,
            inertia=args.inertia,
            min_slope=args.min_slope,
            capacity=args.capacity,
            deposition=args.deposition,
            erosion=args.erosion,
            variant=args.variant,
        ),
        sources=SourceConfig(
            attempts=args.source_attempts,
            min_elevation=args.min_source_elevation,
            flux=args.source_flux,
        ),
        rain=RainConfig(droplets_per_tick=args.rain),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ticks < 0:
        parser.error("--ticks must be >= 0")
    if args.frame_every < 0:
        parser.error("--frame-every must be >= 0")

    config = config_from_args(args)
    try:
        validate_config(config)
    except ConfigError as exc:
        parser.error(str(exc))

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    setup_start = time.perf_counter()
    sim = Simulation(config, seed=args.seed)
    setup_seconds = time.perf_counter() - setup_start
    initial_heights = sim.grid.heights.copy()
    initial_metrics = terrain_metrics(sim.grid)
    initial_mass = sim.mass()

    out_dir = resolve_output_dir(args.out, args.seed, args.size, overwrite=args.overwrite)
    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        frames_dir = stage_dir / "frames"

        def write_frame(simulation: Simulation, stats: TickStats) -> None:
            if args.frame_every and stats.tick % args.frame_every == 0:
                frames_dir.mkdir(exist_ok=True)
                frame = surface_preview_rgb(simulation.grid, simulation.droplets, simulation.sources)
                write_png_rgb(frames_dir / f"frame_{stats.tick:05d}.png", frame)

        run_start = time.perf_counter()
        history = sim.run(args.ticks, on_tick=write_frame)
        run_seconds = time.perf_counter() - run_start

        final_metrics = terrain_metrics(sim.grid)
        heights_2d = sim.grid.as_2d()
        write_height_npy(stage_dir / "height_initial.npy", initial_heights.reshape(heights_2d.shape))
        write_height_npy(stage_dir / "height.npy", heights_2d)
        write_png_u16(stage_dir / "height_16.png", height_preview_u16(heights_2d))
        write_png_u8(stage_dir / "hillshade.png", hillshade(heights_2d, z_factor=float(args.size)))
        write_png_rgb(stage_dir / "surface.png", surface_preview_rgb(sim.grid, sim.droplets, sim.sources))

        totals = _summarize_history(history)
        if args.json:
            deterministic_meta = {
                "seed": args.seed,
                "size": args.size,
                "ticks": args.ticks,
                "config": config.to_dict(),
                "source_count": len(sim.sources),
                "live_droplets": len(sim.droplets),
                "totals": totals,
                "mass": {
                    "initial": initial_mass,
                    "final": sim.mass(),
                    "sediment_removed": sim.sediment_removed,
                },
                "metrics_initial": initial_metrics.to_dict(),
                "metrics": final_metrics.to_dict(),
            }
            meta = {
                **deterministic_meta,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "setup_seconds": setup_seconds,
                "run_seconds": run_seconds,
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        clean_output_dir(out_dir, out_root=Path(args.out))
        move_tree_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    print(f"Simulated terrain: {out_dir}")
    print(f"Grid {args.size}x{args.size}, {len(sim.sources)} sources, variant={config.erosion.variant}")
    print(
        "Droplets: "
        f"spawned={totals['rain_spawned'] + totals['source_spawned']}, "
        f"despawned={totals['despawned']}, "
        f"live={len(sim.droplets)}"
    )
    print(
        "Mass transfer: "
        f"eroded={totals['eroded']:.4f}, "
        f"deposited={totals['deposited']:.4f}, "
        f"carried off={sim.sediment_removed:.4f}"
    )
    print(
        "Land fraction "
        f"{initial_metrics.land_fraction:.3f} -> {final_metrics.land_fraction:.3f}; "
        f"mean slope {initial_metrics.mean_slope:.5f} -> {final_metrics.mean_slope:.5f}"
    )
    print(f"Simulation time: {run_seconds:.3f} s ({args.ticks} ticks)")
    file_count = sum(1 for child in out_dir.iterdir() if child.is_file())
    print(f"Output files: {file_count}")
    return 0


def _summarize_history(history: list[TickStats]) -> dict[str, float | int]:
    return {
        "rain_spawned": sum(stats.rain_spawned for stats in history),
        "source_spawned": sum(stats.source_spawned for stats in history),
        "despawned": sum(stats.despawned for stats in history),
        "invalidated": sum(stats.invalidated for stats in history),
        "eroded": float(sum(stats.eroded for stats in history)),
        "deposited": float(sum(stats.deposited for stats in history)),
    }


if __name__ == "__main__":
    raise SystemExit(main())
