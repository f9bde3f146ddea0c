"""Command-line interface for rpaas (rpaasv2)."""

import argparse
import os
import sys
from pathlib import Path

from . import __version__
from .client import DEFAULT_TIMEOUT, RpaasClient
from .errors import RpaasError
from .output import die, log_success, print_table


COMMANDS = {}


def command(name):
    """Register a command handler. Nested commands use "group action" names."""
    def decorator(fn):
        COMMANDS[name] = fn
        return fn
    return decorator


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    if not args.command:
        args.parser.print_help()
        sys.exit(0)

    key = args.command
    if getattr(args, "action", None):
        key = f"{args.command} {args.action}"
    elif args.command in args.groups:
        args.groups[args.command].print_help()
        sys.exit(1)

    if not args.rpaas_url:
        die("rpaas API address is not set. Use --rpaas-url or RPAAS_URL.")

    client = RpaasClient(args.rpaas_url, timeout=args.timeout)
    try:
        COMMANDS[key](args, client)
    except RpaasError as e:
        die(str(e))


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(prog="rpaasv2", description="Manage reverse proxy instances")
    p.add_argument("--version", "-v", action="version", version=f"rpaasv2 {__version__}")
    p.add_argument(
        "--rpaas-url", metavar="URL", default=os.environ.get("RPAAS_URL", ""),
        help="rpaas API address (default: $RPAAS_URL)",
    )
    p.add_argument(
        "--timeout", type=float, default=DEFAULT_TIMEOUT, metavar="SECONDS",
        help="Request timeout",
    )

    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("-i", "--instance", required=True, metavar="NAME", help="Instance name")

    sub = p.add_subparsers(dest="command", metavar="<command>")
    groups = {}

    sub.add_parser("info", help="Show instance address, replicas and routes", parents=[target])
    sub.add_parser("status", help="Show replica status", parents=[target])

    group = sub.add_parser("blocks", help="Manage configuration blocks")
    groups["blocks"] = group
    actions = group.add_subparsers(dest="action", metavar="<action>")
    actions.add_parser("list", help="List blocks", parents=[target])
    add = actions.add_parser("update", help="Add or replace a block", parents=[target])
    add.add_argument("-b", "--block", required=True, help="Block name (root, http, server, lua-server, lua-worker)")
    add.add_argument("-c", "--content", required=True, metavar="FILE", help="File with the block content")
    add = actions.add_parser("delete", help="Remove a block", parents=[target])
    add.add_argument("-b", "--block", required=True, help="Block name")

    group = sub.add_parser("routes", help="Manage custom routes")
    groups["routes"] = group
    actions = group.add_subparsers(dest="action", metavar="<action>")
    actions.add_parser("list", help="List routes", parents=[target])
    add = actions.add_parser("update", help="Add or replace a route", parents=[target])
    add.add_argument("-p", "--path", required=True, help="Route path")
    add.add_argument("-d", "--destination", default="", help="Forwarding destination host")
    add.add_argument("-c", "--content", default="", metavar="FILE", help="File with the location configuration")
    add.add_argument("--https-only", action="store_true", help="Redirect plain HTTP to HTTPS")
    add = actions.add_parser("delete", help="Remove a route", parents=[target])
    add.add_argument("-p", "--path", required=True, help="Route path")

    group = sub.add_parser("certificates", help="Manage TLS certificates")
    groups["certificates"] = group
    actions = group.add_subparsers(dest="action", metavar="<action>")
    add = actions.add_parser("update", help="Add or replace a certificate", parents=[target])
    add.add_argument("--cert", required=True, metavar="FILE", help="PEM certificate file")
    add.add_argument("--key", required=True, metavar="FILE", help="PEM private key file")
    add.add_argument("--name", default="", help="Certificate name (default: default)")

    group = sub.add_parser("extra-files", help="Manage extra files")
    groups["extra-files"] = group
    actions = group.add_subparsers(dest="action", metavar="<action>")
    add = actions.add_parser("list", help="List extra files", parents=[target])
    add.add_argument("--show-content", action="store_true", help="Print file contents")
    for action, help_text in [("add", "Upload new files"), ("update", "Replace existing files")]:
        add = actions.add_parser(action, help=help_text, parents=[target])
        add.add_argument(
            "files", nargs="+", metavar="NAME=FILE",
            help="Destination path and local file, e.g. www/index.html=./index.html",
        )
    add = actions.add_parser("delete", help="Remove files", parents=[target])
    add.add_argument("files", nargs="+", metavar="NAME", help="File path")

    add = sub.add_parser("purge", help="Purge a path from the cache", parents=[target])
    add.add_argument("-p", "--path", required=True, help="Path to purge")
    add.add_argument("--preserve-path", action="store_true", help="Purge the path as given, without protocol prefix")

    args = p.parse_args(argv)
    args.parser = p
    args.groups = groups
    return args


def _read_file(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        die(f"Cannot read {path}: {e.strerror}")


def _parse_file_args(items: list[str]) -> dict[str, bytes]:
    files = {}
    for item in items:
        if "=" not in item:
            die(f"Invalid file argument '{item}', expected NAME=FILE")
        name, local = item.split("=", 1)
        files[name] = _read_file(local)
    return files


# --- commands ---

@command("info")
def cmd_info(args, client):
    for item in client.get_instance_info(args.instance):
        value = item["value"].replace("\n", "\n  ")
        print(f"{item['label']}:\n  {value}" if "\n" in item["value"] else f"{item['label']}: {value}")


@command("status")
def cmd_status(args, client):
    pods = client.get_instance_status(args.instance)
    if not pods:
        print("No replicas found.")
        return
    rows = []
    for name, status in sorted(pods.items()):
        state = "running" if status["running"] else "not running"
        rows.append([name, state, status.get("address") or "", status.get("status") or ""])
    print_table(["REPLICA", "STATE", "ADDRESS", "EVENTS"], rows)


@command("blocks list")
def cmd_blocks_list(args, client):
    blocks = client.list_blocks(args.instance)
    if not blocks:
        print("No blocks found.")
        return
    for block in blocks:
        print(f"# {block['block_name']}")
        print(block["content"])


@command("blocks update")
def cmd_blocks_update(args, client):
    content = _read_file(args.content).decode()
    client.update_block(args.instance, args.block, content)
    log_success(f"Block {args.block} updated")


@command("blocks delete")
def cmd_blocks_delete(args, client):
    client.delete_block(args.instance, args.block)
    log_success(f"Block {args.block} removed")


@command("routes list")
def cmd_routes_list(args, client):
    routes = client.list_routes(args.instance)
    if not routes:
        print("No routes found.")
        return
    rows = []
    for route in routes:
        https = "yes" if route.get("https_only") else "no"
        rows.append([route["path"], route.get("destination") or "", https, route.get("content") or ""])
    print_table(["PATH", "DESTINATION", "HTTPS ONLY", "CONTENT"], rows)


@command("routes update")
def cmd_routes_update(args, client):
    content = _read_file(args.content).decode() if args.content else ""
    client.update_route(
        args.instance,
        path=args.path,
        destination=args.destination,
        content=content,
        https_only=args.https_only,
    )
    log_success(f"Route {args.path} updated")


@command("routes delete")
def cmd_routes_delete(args, client):
    client.delete_route(args.instance, args.path)
    log_success(f"Route {args.path} removed")


@command("certificates update")
def cmd_certificates_update(args, client):
    certificate = _read_file(args.cert).decode()
    key = _read_file(args.key).decode()
    client.update_certificate(args.instance, certificate, key, name=args.name)
    log_success(f"Certificate {args.name or 'default'} updated")


@command("extra-files list")
def cmd_extra_files_list(args, client):
    files = client.list_extra_files(args.instance)
    if not files:
        print("No extra files found.")
        return
    for name, content in files.items():
        print(name)
        if args.show_content:
            print(content.decode(errors="replace"))


@command("extra-files add")
def cmd_extra_files_add(args, client):
    files = _parse_file_args(args.files)
    client.add_extra_files(args.instance, files)
    log_success(f"Added {', '.join(files)}")


@command("extra-files update")
def cmd_extra_files_update(args, client):
    files = _parse_file_args(args.files)
    client.update_extra_files(args.instance, files)
    log_success(f"Updated {', '.join(files)}")


@command("extra-files delete")
def cmd_extra_files_delete(args, client):
    client.delete_extra_files(args.instance, args.files)
    log_success(f"Removed {', '.join(args.files)}")


@command("purge")
def cmd_purge(args, client):
    count = client.purge(args.instance, args.path, preserve_path=args.preserve_path)
    log_success(f"Object purged on {count} servers")
