"""Command line entry point: `gistmgr <command>` / `python -m gistmgr`."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from gistmgr.auth import authenticate
from gistmgr.config import (
    THEME_DEFAULT_ALIAS,
    Config,
    available_themes,
    init_config,
    resolve_theme,
    setup_logging,
)
from gistmgr.controller import GistController
from gistmgr.errors import AuthError, GistMgrError, ValidationError, user_message
from gistmgr.manager import GistManager
from gistmgr.models import Gist, GistFile, Visibility

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gistmgr",
        description="Manage GitHub gists with a local cache and drafts.",
    )
    parser.add_argument("--config-dir", help="Directory holding config.json, the cache and the log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Store a token or run the OAuth flow")
    p.add_argument("--token", help="Personal access token with the gist scope")
    p.add_argument("--client-id", help="OAuth app client id")
    p.add_argument("--client-secret", help="OAuth app client secret")

    sub.add_parser("logout", help="Forget the stored token")
    sub.add_parser("list", help="List gists and their files")

    p = sub.add_parser("show", help="Print a file")
    p.add_argument("gist", help="Gist id or name")
    p.add_argument("file", help="File name")

    p = sub.add_parser("new-gist", help="Create a draft gist")
    p.add_argument("name")
    p.add_argument("--public", action="store_true", help="Publish as a public gist")

    p = sub.add_parser("new-file", help="Add a file to a gist")
    p.add_argument("gist")
    p.add_argument("file")
    p.add_argument("--content", default="", help="Initial content")

    p = sub.add_parser("edit", help="Replace the content of a file")
    p.add_argument("gist")
    p.add_argument("file")
    p.add_argument("--content", required=True)

    p = sub.add_parser("publish", help="Upload a gist and its draft files")
    p.add_argument("gist")

    p = sub.add_parser("rm", help="Delete a gist, or one of its files")
    p.add_argument("gist")
    p.add_argument("file", nargs="?")

    p = sub.add_parser("rename", help="Rename a gist, or one of its files")
    p.add_argument("gist")
    p.add_argument("names", nargs="+", metavar="[FILE] NEW")

    p = sub.add_parser("theme", help="Show or set the highlight theme")
    p.add_argument("name", nargs="?")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = init_config(args.config_dir)
        setup_logging(cfg.config_path, logging.DEBUG if args.verbose else logging.INFO)
        return _dispatch(args, cfg)
    except GistMgrError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(user_message(exc), file=sys.stderr)
        return 1


def _dispatch(args: argparse.Namespace, cfg: Config) -> int:
    if args.command == "login":
        return _cmd_login(args, cfg)
    if args.command == "logout":
        cfg.clear_secrets()
        print("Logged out")
        return 0
    if args.command == "theme":
        return _cmd_theme(args, cfg)

    with open_manager(cfg) as mgr:
        return _run_gist_command(args, mgr)


def open_manager(cfg: Config) -> GistManager:
    """Build and open the application context from the stored token."""
    mgr = GistManager(authenticate(cfg, interactive=False))
    try:
        mgr.open(cfg.db_path)
    except GistMgrError:
        mgr.close()
        raise
    return mgr


def _cmd_login(args: argparse.Namespace, cfg: Config) -> int:
    auth = authenticate(
        cfg,
        token=args.token,
        client_id=args.client_id,
        client_secret=args.client_secret,
    )
    try:
        user = GistController(auth).get_user()
    except AuthError:
        cfg.clear_secrets()
        raise
    print(f"Logged in as {user.get('login', '?')}")
    return 0


def _cmd_theme(args: argparse.Namespace, cfg: Config) -> int:
    if not args.name:
        print(resolve_theme(cfg.theme))
        return 0
    if args.name != THEME_DEFAULT_ALIAS and args.name not in available_themes():
        raise ValidationError(
            f"Unknown theme {args.name!r}",
            details={"available": available_themes()},
        )
    cfg.set("theme", args.name)
    print(resolve_theme(cfg.theme))
    return 0


def _run_gist_command(args: argparse.Namespace, mgr: GistManager) -> int:
    sync, drafts = mgr.sync, mgr.drafts

    if args.command == "list":
        for gist in sync.sorted_gists():
            print(f"{gist.id}\t{gist.status.value}\t{gist.visibility.value}\t{gist.name}")
            for f in sync.files_of(gist.id):
                print(f"  {f.title}{_file_flags(f)}")
        return 0

    if args.command == "new-gist":
        visibility = Visibility.PUBLIC if args.public else Visibility.SECRET
        gist = drafts.create_gist(args.name, visibility=visibility)
        print(gist.id)
        return 0

    gist = resolve_gist(sync.sorted_gists(), args.gist)

    if args.command == "show":
        f = resolve_file(sync.files_of(gist.id), args.file)
        sys.stdout.write(sync.get_content(f.id))
        return 0

    if args.command == "new-file":
        f = drafts.create_file(gist.id, args.file, args.content)
        print(f.id)
        return 0

    if args.command == "edit":
        f = resolve_file(sync.files_of(gist.id), args.file)
        drafts.save_file(f.id, args.content)
        return 0

    if args.command == "publish":
        result = drafts.publish(gist.id)
        print(result.gist_id)
        if result.storage_error or result.unmatched_titles:
            print("warning: the local cache could not be fully updated", file=sys.stderr)
        return 0

    if args.command == "rm":
        if args.file:
            drafts.delete_file(resolve_file(sync.files_of(gist.id), args.file).id)
        else:
            drafts.delete_gist(gist.id)
        return 0

    if args.command == "rename":
        if len(args.names) > 2:
            raise ValidationError("rename takes GIST [FILE] NEW")
        if len(args.names) == 1:
            drafts.rename_gist(gist.id, args.names[0])
        else:
            f = resolve_file(sync.files_of(gist.id), args.names[0])
            drafts.rename_file(f.id, args.names[1])
        return 0

    raise ValidationError(f"Unknown command {args.command!r}")


def resolve_gist(gists: Sequence[Gist], ref: str) -> Gist:
    """Find a gist by id, else by exact name (which must be unambiguous)."""
    for gist in gists:
        if gist.id == ref:
            return gist
    named = [g for g in gists if g.name == ref]
    if len(named) == 1:
        return named[0]
    if not named:
        raise ValidationError(f"No gist named {ref!r}")
    raise ValidationError(
        f"Several gists are named {ref!r}, use the id",
        details={"ids": [g.id for g in named]},
    )


def resolve_file(files: Sequence[GistFile], title: str) -> GistFile:
    for f in files:
        if f.title == title:
            return f
    raise ValidationError(f"No file named {title!r}")


def _file_flags(f: GistFile) -> str:
    flags = []
    if f.draft:
        flags.append("draft")
    if f.stale:
        flags.append("stale")
    return f" ({', '.join(flags)})" if flags else ""
