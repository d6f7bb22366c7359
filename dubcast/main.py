"""
Dubcast - command line entry point

Subcommands:
    dub             Dub a source video into target languages and publish the bundle
    refresh-master  Rebuild an asset's master playlist from its ready tracks
    add-audio       Package an existing audio file as one language of an asset
    tracks          Show the dub tracks recorded for an asset
    init-db         Create database tables
    serve           Run the HTTP API
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from dubcast import settings
from dubcast.exceptions import DubcastError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration"""
    log_level = logging.DEBUG if verbose else getattr(logging, settings.get_log_level(), logging.INFO)

    detailed_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-15s:%(lineno)-4d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    simple_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(simple_formatter)
    handlers = [console_handler]

    log_file = log_file or settings.get_log_file()
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def _build(args):
    from dubcast.db.session import DatabaseManager
    from dubcast.services.events import LoggingObserver
    from dubcast.services.orchestrator import build_orchestrator

    database = DatabaseManager(args.database_url)
    database.create_tables()
    return database, build_orchestrator(database, observer=LoggingObserver())


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_dub(args) -> int:
    from dubcast.services.orchestrator import DubbingRequest

    database, orchestrator = _build(args)
    try:
        result = orchestrator.run(DubbingRequest(
            target_languages=args.languages,
            source_url=args.source,
            asset_id=args.asset_id,
            section_id=args.section_id,
            title=args.title,
            include_origin=args.include_origin,
        ))
    finally:
        database.close()
    _print(result.to_dict())
    return 0 if result.success else 1


def cmd_refresh_master(args) -> int:
    database, orchestrator = _build(args)
    try:
        result = orchestrator.refresh_manifest(asset_id=args.asset_id, section_id=args.section_id)
    finally:
        database.close()
    _print(result.to_dict())
    return 0 if result.success else 1


def cmd_add_audio(args) -> int:
    database, orchestrator = _build(args)
    try:
        result = orchestrator.add_audio_track(
            args.language, args.audio, asset_id=args.asset_id, section_id=args.section_id,
        )
    finally:
        database.close()
    _print(result.to_dict())
    return 0 if result.success else 1


def cmd_tracks(args) -> int:
    database, orchestrator = _build(args)
    try:
        asset = orchestrator.find_asset(asset_id=args.asset_id, section_id=args.section_id)
        tracks = orchestrator.registry.list_all(asset.id)
    finally:
        database.close()
    _print({
        "asset_id": asset.id,
        "master_key": asset.master_key,
        "tracks": [
            {"language": t.language, "status": t.status, "url": t.url, "error": t.error_message}
            for t in tracks
        ],
    })
    return 0


def cmd_init_db(args) -> int:
    from dubcast.db.session import DatabaseManager

    database = DatabaseManager(args.database_url)
    database.create_tables()
    database.close()
    logger.info("Database tables created")
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    uvicorn.run("dubcast.api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _add_asset_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--asset-id", help="Existing asset ID")
    parser.add_argument("--section-id", help="Section ID the asset is keyed by")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dubcast", description="Multi-language HLS dubbing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--database-url", help="Override the configured database URL")
    sub = parser.add_subparsers(dest="command", required=True)

    dub = sub.add_parser("dub", help="Dub a video and publish the HLS bundle")
    dub.add_argument("languages", nargs="+", help="Target language codes, e.g. en ja")
    dub.add_argument("--source", help="Source video URL or path (required for new assets)")
    _add_asset_args(dub)
    dub.add_argument("--title", help="Asset title")
    origin = dub.add_mutually_exclusive_group()
    origin.add_argument("--origin", dest="include_origin", action="store_true", default=None,
                        help="Include the origin audio track")
    origin.add_argument("--no-origin", dest="include_origin", action="store_false",
                        help="Do not include the origin audio track")
    dub.set_defaults(func=cmd_dub)

    refresh = sub.add_parser("refresh-master", help="Rebuild the master playlist from ready tracks")
    _add_asset_args(refresh)
    refresh.set_defaults(func=cmd_refresh_master)

    add_audio = sub.add_parser("add-audio", help="Add an audio file as a language track")
    add_audio.add_argument("language", help="Language code of the audio")
    add_audio.add_argument("audio", help="Path to the audio file")
    _add_asset_args(add_audio)
    add_audio.set_defaults(func=cmd_add_audio)

    tracks = sub.add_parser("tracks", help="Show dub tracks of an asset")
    _add_asset_args(tracks)
    tracks.set_defaults(func=cmd_tracks)

    init_db = sub.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=cmd_init_db)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    try:
        return args.func(args)
    except DubcastError as e:
        logger.error(f"Execution failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
