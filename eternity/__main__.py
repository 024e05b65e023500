"""Entry point: ``python -m eternity [serve|cli]``.

``serve`` (the default) runs the HTTP API with the engine ticking in the
background.  ``cli`` runs a headless battle: every civilization marches
its soldiers, in formation, on the next civilization's town.
"""

from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--seed", type=int, default=42, help="World seed")
    common.add_argument("--size", type=int, default=64, help="Map width and height in tiles")
    common.add_argument("--log-level", default="INFO", choices=_LOG_LEVELS)

    parser = argparse.ArgumentParser(prog="eternity", description="Eternity RTS simulation core")
    parser.set_defaults(handler=None)
    modes = parser.add_subparsers(dest="mode")

    serve = modes.add_parser("serve", parents=[common], help="Run the HTTP API (default)")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--paused", action="store_true", help="Build the world but do not start ticking")
    serve.set_defaults(handler=_serve)

    cli = modes.add_parser("cli", parents=[common], help="Run a headless battle and report survivors")
    cli.add_argument("--ticks", type=int, default=600)
    cli.add_argument("--formation", default="line", help="Formation each army marches in")
    cli.set_defaults(handler=_battle)

    return parser


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from eternity.api.app import create_app
    from eternity.config import SimulationConfig

    config = SimulationConfig(
        world_seed=args.seed,
        grid_width=args.size,
        grid_height=args.size,
        log_level=args.log_level,
    )
    uvicorn.run(
        create_app(config, autostart=not args.paused),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


def _battle(args: argparse.Namespace) -> None:
    from eternity.config import SimulationConfig
    from eternity.core.enums import EntityKind
    from eternity.engine.setup import build_world_loop
    from eternity.systems.generator import MapGenerator
    from eternity.systems.rng import DeterministicRNG
    from eternity.utils.logging import bind_tick_source, setup_logging

    config = SimulationConfig(
        world_seed=args.seed,
        max_ticks=args.ticks,
        grid_width=args.size,
        grid_height=args.size,
        log_level=args.log_level,
    )
    setup_logging(config.log_level)

    loop = build_world_loop(config)
    bind_tick_source(lambda: loop.world.tick)
    world = loop.world
    starts = MapGenerator(config, DeterministicRNG(config.world_seed)).starting_positions()

    owners = list(config.civilizations)
    for i, owner in enumerate(owners):
        enemy_start = starts[owners[(i + 1) % len(owners)]]
        soldiers = [e for e in world.by_owner(owner) if e.kind == EntityKind.UNIT and not e.is_villager]
        formation = loop.formations.create_formation(soldiers, args.formation, owner)
        if formation is not None:
            loop.formations.move_formation(formation.id, enemy_start.x + 0.5, enemy_start.y + 0.5)

    loop.run()

    for owner in owners:
        alive = world.by_owner(owner)
        logger.info(
            "%s: %d units, %d structures remaining",
            owner,
            sum(1 for e in alive if e.kind == EntityKind.UNIT),
            sum(1 for e in alive if e.kind != EntityKind.UNIT),
        )


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.handler is None:
        args = parser.parse_args(["serve", *(argv or [])])
    args.handler(args)


if __name__ == "__main__":
    main()
