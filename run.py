#!/usr/bin/env python3
"""
Command-Line Interface for the RookUCI engine driver
----------------------------------------------------
Small commands for checking that a UCI engine can be driven: run the
handshake and list what it advertises, or ask it for a move.
"""

import argparse
import asyncio
import logging
import os
import sys
import time

import chess

from engine import EngineEvent, EnginePlayer, EngineSession, EngineSpawnError
from utils.config_loader import load_config


def setup_logging(config):
    """Console logging, plus a per-run file when ``logging.log_dir`` is set."""
    log_cfg = config["logging"]
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_cfg["log_dir"]:
        os.makedirs(log_cfg["log_dir"], exist_ok=True)
        log_file_path = os.path.join(log_cfg["log_dir"], f"run_{time.strftime('%Y%m%d-%H%M%S')}.log")
        handlers.append(logging.FileHandler(log_file_path))

    logging.basicConfig(
        level=getattr(logging, log_cfg["level"].upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


async def probe(config, args):
    """Run the handshake and print identity and advertised options."""
    engine_cfg = config["engine"]
    try:
        session = EngineSession.spawn(
            engine_cfg["path"], [engine_cfg["path"], *engine_cfg["args"]], config
        )
    except EngineSpawnError as exc:
        print(f"✗ No engine available: {exc}")
        return 1

    try:
        await session.uci()
        state = session.state
        if not state.uciok:
            print(f"✗ {engine_cfg['path']} did not answer the UCI handshake")
            return 1

        print(f"✓ Engine: {state.id_name or '?'}")
        if state.id_author:
            print(f"✓ Author: {state.id_author}")
        for name, opt in sorted(state.options.items()):
            bounds = f" [{opt.min}..{opt.max}]" if opt.min is not None or opt.max is not None else ""
            print(f"  {name} ({opt.kind}) default={opt.default}{bounds}")
        return 0
    finally:
        await session.aclose()


async def bestmove(config, args):
    """Ask the engine for a move in the given position."""
    player = await EnginePlayer.start(config)
    if player is None:
        print("✗ No engine available")
        return 1

    try:
        if not player.ready:
            print("✗ Engine is not ready")
            return 1

        board = chess.Board(args.fen) if args.fen else chess.Board()
        for text in (args.moves or "").split():
            board.push_uci(text)

        if args.show_info:
            player.session.on(EngineEvent.INFO, print)

        limits = {}
        if args.depth is not None:
            limits["depth"] = args.depth
        if args.movetime is not None:
            limits["movetime"] = args.movetime
        if not limits:
            limits["movetime"] = 1000

        move = await player.select_move(board, **limits)
        state = player.session.state
        if move is None:
            print(f"✗ {player.label()} returned no move ({state.bestmove})")
            return 1

        ponder = f" (ponder {state.ponder})" if state.ponder else ""
        print(f"✓ {player.label()}: {board.san(move)} [{move.uci()}]{ponder}")
        return 0
    finally:
        await player.aclose()


def main(argv=None):
    """
    Main function to parse arguments and run commands.
    """
    parser = argparse.ArgumentParser(description="RookUCI engine driver CLI")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/engine.yaml",
        help="Path to the configuration file.",
    )
    parser.add_argument(
        "--engine",
        type=str,
        default=None,
        help="Engine executable, overrides engine.path from the config.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    probe_parser = subparsers.add_parser(
        "probe", help="Run the UCI handshake and list the engine's options."
    )
    probe_parser.set_defaults(func=probe)

    move_parser = subparsers.add_parser(
        "bestmove", help="Ask the engine for its best move."
    )
    move_parser.add_argument("--fen", type=str, default=None, help="Start position (FEN).")
    move_parser.add_argument(
        "--moves", type=str, default="", help="Space-separated UCI moves played from the start position."
    )
    move_parser.add_argument("--depth", type=int, default=None, help="Search depth.")
    move_parser.add_argument(
        "--movetime", type=int, default=None, help="Search time in milliseconds."
    )
    move_parser.add_argument(
        "--show-info", action="store_true", help="Print the engine's info lines."
    )
    move_parser.set_defaults(func=bestmove)

    args = parser.parse_args(argv)

    config = load_config(args.config if os.path.exists(args.config) else None)
    if args.engine:
        config["engine"]["path"] = args.engine
    setup_logging(config)

    return asyncio.run(args.func(config, args))


if __name__ == "__main__":
    sys.exit(main())
