"""
GridCity — Entry Point

Builds a Game, optionally resumes the saved city, and runs the pygame
viewer. On exit the city is saved.
"""

import argparse

from gridcity.config import GRID_SIZE
from gridcity.core.logger import get_logger
from gridcity.core.persistence import SqliteStore, has_save, delete_save
from gridcity.engine.loop import Game


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="GridCity simulation")
    parser.add_argument("--size", type=int, default=GRID_SIZE,
                        help="grid size (the city is size x size tiles)")
    parser.add_argument("--save", default=None,
                        help="path of the save database")
    parser.add_argument("--new-game", action="store_true",
                        help="delete any existing save and start fresh")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    log = get_logger()
    log.log_event("SYSTEM", "Initializing GridCity...")

    store = SqliteStore(args.save)
    if args.new_game and has_save(store):
        log.log_event("SYSTEM", "--new-game flag detected. Deleting existing save.")
        delete_save(store)

    game = Game(size=args.size, store=store)
    if has_save(store) and not args.new_game:
        log.log_event("SYSTEM", "Save found. Resuming previous city.")
        game.trigger_load_game()
    else:
        log.log_event("SYSTEM", f"Starting new {args.size}x{args.size} city.")

    from gridcity.gui.renderer import Renderer
    renderer = Renderer(game)
    log.log_event("SYSTEM", "Controls: 1-6=Build, B=Bulldoze, S=Select, "
                            "Space=Pause, F5=Save, F9=Load, ESC=Quit")

    try:
        renderer.run()
    except KeyboardInterrupt:
        log.log_event("SYSTEM", "Interrupted.")
    finally:
        game.shutdown()


if __name__ == "__main__":
    main()
