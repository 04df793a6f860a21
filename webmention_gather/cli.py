from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from .config import load_config
from .errors import ConfigError, SiteError, StorageError, WebmentionAPIError
from .gather import gather_webmentions
from .run_log import RunLogger
from .site import load_site_manifest
from .webmention_io import WebmentionIOClient


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="webmention_gather")

    subparsers = parser.add_subparsers(dest="command", required=True)

    gather = subparsers.add_parser(
        "gather",
        help="Look up new webmentions for every post and merge them into the cache.",
    )
    gather.add_argument(
        "--config",
        required=True,
        help="Path to YAML config file.",
    )
    gather.add_argument(
        "--site",
        required=True,
        help="Path to the YAML manifest listing posts and pages.",
    )
    gather.add_argument(
        "--cache",
        default=None,
        help="Override the cache file from the config.",
    )
    gather.add_argument(
        "--log",
        default="webmention_gather.log",
        help="Path to the JSONL run log.",
    )
    gather.add_argument(
        "--verbose",
        action="store_true",
        help="Also log per-mention diagnostics.",
    )
    gather.add_argument(
        "--offline",
        action="store_true",
        help="Run without network calls using canned mentions.",
    )
    gather.set_defaults(_handler=_cmd_gather)

    return parser


def _eprint(message: str) -> None:
    print(message, file=sys.stderr)


def _cmd_gather(args: argparse.Namespace) -> int:
    log_path = Path(args.log)
    min_level = "DEBUG" if bool(getattr(args, "verbose", False)) else "INFO"

    with RunLogger.open(log_path, overwrite=True, min_level=min_level) as log:
        log.info(
            "gather_command_started",
            config_path=str(args.config),
            site_path=str(args.site),
            offline=bool(args.offline),
        )

        try:
            cfg = load_config(args.config)
            site = load_site_manifest(args.site)

            if bool(args.offline):
                from .offline import OfflineWebmentionClient

                client = OfflineWebmentionClient()
            else:
                client = WebmentionIOClient(cfg.webmentions.api, logger=log)

            try:
                result = gather_webmentions(
                    cfg,
                    site,
                    client=client,
                    cache_file=args.cache,
                    logger=log,
                )
            finally:
                client.close()

            print(f"status={result.status}")
            print(f"items={result.items}")
            print(f"throttled={result.throttled}")
            print(f"fetched={result.fetched}")
            print(f"mentions_added={result.mentions_added}")
            if result.cache_path is not None:
                print(f"cache={result.cache_path}")
            print(f"warnings={log.level_counts()['WARN']}")
            print(f"run_log={log_path}")

            return 0
        except Exception as e:
            log.exception("gather_command_failed", exc=e)
            raise


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        handler = getattr(args, "_handler")
        return int(handler(args))
    except (ConfigError, SiteError) as e:
        _eprint(str(e))
        return 2
    except (StorageError, WebmentionAPIError) as e:
        _eprint(str(e))
        return 3
    except KeyboardInterrupt:
        _eprint("Interrupted")
        return 130
    except Exception as e:
        _eprint(f"Unexpected error: {e}")
        return 1
