# autoshuffle/ui/cli.py
import argparse
import logging
import sys
from typing import List, Optional, Sequence

from autoshuffle.library.loader import FileLoader, Loader, LoadError, MPDLoader
from autoshuffle.library.rules import Rule, TagParser
from autoshuffle.mpd_player.auth import AuthorizationError, ConnectError, connect
from autoshuffle.player.maintainer import QueueMaintainer, describe_pool, enqueue_only
from autoshuffle.settings import Options, OptionsError, Settings, parse_count
from autoshuffle.shuffle.chain import EmptyChainError, ShuffleChain

logger = logging.getLogger(__name__)

BY_ALBUM = ["album", "date"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoshuffle",
        description="Keep MPD's queue filled with randomly picked songs",
    )

    parser.add_argument("--only", "-o", metavar="N",
                        help="Queue N songs and exit")
    parser.add_argument("--no-check", "-n", dest="check_uris", action="store_false",
                        help="Don't check --file URIs against the MPD database")
    parser.add_argument("--file", "-f", dest="file_in", type=argparse.FileType("r"),
                        help="Pick from the URIs in this file ('-' for stdin) instead of the database")
    parser.add_argument("--exclude", "-e", nargs="+", action="append", default=[],
                        metavar="TAG VALUE",
                        help="Exclude songs whose TAG contains VALUE (pairs, repeatable)")
    parser.add_argument("--queue-buffer", "-q", metavar="N",
                        help="Keep N songs queued after the current one (default=0)")
    parser.add_argument("--host", help="MPD host, [password@]host (default=$MPD_HOST or localhost)")
    parser.add_argument("--port", "-p", metavar="PORT",
                        help="MPD port (default=$MPD_PORT or 6600)")
    parser.add_argument("--group-by", "-g", nargs="+", action="append", default=[],
                        metavar="TAG", help="Shuffle groups of songs sharing these tags")
    parser.add_argument("--by-album", action="count", default=0,
                        help="Same as --group-by album date")
    parser.add_argument("--tweak", "-t", action="append", default=[], metavar="NAME=VALUE",
                        help="window-size, play-on-startup, suspend-timeout, exit-on-db-update")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _parse_rule(args: List[str], tagger: TagParser) -> Rule:
    rule = Rule()
    for i in range(0, len(args), 2):
        if i + 1 >= len(args):
            raise OptionsError(f"no value supplied for match '{args[i]}'")
        tag = tagger.parse(args[i])
        if tag is None:
            raise OptionsError(f"unknown tag '{args[i]}'")
        rule.add_pattern(tag, args[i + 1])
    return rule


def _parse_group_by(args: argparse.Namespace, tagger: TagParser) -> List[str]:
    if len(args.group_by) > 1:
        raise OptionsError("'-g' can only be provided once")
    if args.by_album > 1:
        raise OptionsError("'--by-album' can only be provided once")
    if args.group_by and args.by_album:
        raise OptionsError("'-g' can only be provided once")
    if args.by_album:
        return list(BY_ALBUM)
    out = []
    for name in (args.group_by[0] if args.group_by else []):
        tag = tagger.parse(name)
        if tag is None:
            raise OptionsError(f"unknown tag '{name}'")
        out.append(tag)
    return out


def options_from_args(args: argparse.Namespace, tagger: Optional[TagParser] = None) -> Options:
    tagger = tagger or TagParser()
    opts = Options(
        file_in=args.file_in,
        check_uris=args.check_uris,
        host=args.host,
        verbose=args.verbose,
    )
    if args.only is not None:
        opts.queue_only = parse_count("--only", args.only)
    if args.queue_buffer is not None:
        opts.queue_buffer = parse_count("--queue-buffer", args.queue_buffer)
    if args.port is not None:
        opts.port = parse_count("--port", args.port)

    opts.ruleset = [_parse_rule(r, tagger) for r in args.exclude]
    opts.group_by = _parse_group_by(args, tagger)
    for raw in args.tweak:
        opts.tweak.apply(raw)

    if opts.file_in is not None and not opts.check_uris and (opts.ruleset or opts.group_by):
        raise OptionsError("--group-by/--exclude need song metadata; drop --no-check")
    return opts


def parse_options(argv: Optional[Sequence[str]] = None, tagger: Optional[TagParser] = None) -> Options:
    """Parse argv into Options. Raises OptionsError, argparse exits on malformed input."""
    args = build_parser().parse_args(argv)
    return options_from_args(args, tagger)


def build_loader(options: Options, player) -> Loader:
    if options.file_in is not None:
        return FileLoader(options.file_in, source=player if options.check_uris else None,
                          ruleset=options.ruleset, group_by=options.group_by,
                          check_uris=options.check_uris)
    return MPDLoader(player, options.ruleset, options.group_by)


def load_catalog(options: Options, player, chain: ShuffleChain) -> None:
    """Initial load. A --file stream is closed once read, stdin is left alone."""
    try:
        build_loader(options, player).load(chain)
    finally:
        if options.file_in is not None and options.file_in is not sys.stdin:
            options.file_in.close()


def main(argv: Optional[Sequence[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = options_from_args(args)
        settings = Settings.from_env()
    except OptionsError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )

    # --- connect ---
    try:
        player = connect(options.host, options.port, settings)
    except (ConnectError, AuthorizationError) as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    # --- load songs ---
    chain = ShuffleChain(window_size=options.tweak.window_size)
    try:
        load_catalog(options, player, chain)
    except LoadError as e:
        print(f"Failed to load songs: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info(describe_pool(chain))
    if len(chain) == 0:
        sys.exit(1)

    try:
        if options.queue_only:
            added = enqueue_only(player, chain, options.queue_only)
            print(f"Added {added} song{'' if added == 1 else 's'}.")
            return

        reloader = MPDLoader(player, options.ruleset, options.group_by) if options.live_catalog else None
        maintainer = QueueMaintainer(player, chain, options.policy(), reloader=reloader)
        maintainer.start()
        maintainer.run()
    except EmptyChainError:
        print("Song pool is empty, nothing to shuffle.", file=sys.stderr)
        sys.exit(1)
    except LoadError as e:
        print(f"Failed to reload songs: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
