"""CLI for ccswitch: list, add, edit, switch, delete profiles; preferences; launch the GUI or the local API."""

import argparse
import sys
from rich import print
from rich.markup import escape
from rich.table import Table
from getpass import getpass

from .activation import ActivationError, default_activator
from .config import DEFAULTS, load_config, save_config, setup_logging
from .profiles import ProfileStore, ProfileIndexError, mask_token, validate_fields

TARGETS = ("auto", "env", "settings")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

def open_store(cfg):
    return ProfileStore(cfg.get("profiles_path"), default_activator(cfg))

def resolve_index(store, ref: str) -> int:
    """A profile reference is either the number shown by `list` or a profile id."""
    if ref.lstrip("-").isdigit():
        return int(ref)
    return store.index_of(ref)

def fail(msg: str) -> int:
    print(f"[red]{escape(msg)}[/red]")
    return 1

def cmd_list(store, args):
    profiles = store.profiles()
    if not profiles:
        print("[yellow]No profiles yet. Add one with `ccswitch add`.[/yellow]")
        return 0
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", width=4)
    table.add_column("Active", width=6)
    table.add_column("Name")
    table.add_column("Base URL")
    table.add_column("Token")
    table.add_column("ID")
    for i, p in enumerate(profiles):
        table.add_row(
            str(i), "✓" if p.is_active else "", escape(p.name), escape(p.base_url), escape(mask_token(p.token)), p.id
        )
    print(table)
    return 0

def cmd_current(store, args):
    p = store.get_active()
    if p is None:
        print("Active: none")
        return 0
    print(f"Active: [bold green]{escape(p.name)}[/bold green] ({escape(p.base_url)})")
    return 0

def cmd_add(store, args):
    name = args.name or input("Profile name: ")
    base_url = args.base_url or input("Base URL: ")
    token = args.token or getpass("Token (input hidden): ")
    validate_fields(name, base_url, token)
    p = store.add(name, base_url, token)
    print(f"[green]Added profile '{escape(p.name)}'.[/green] Run `ccswitch switch {p.id}` to activate it.")
    return 0

def cmd_edit(store, args):
    with store.locked():
        index = resolve_index(store, args.profile)
        current = store.get(index)
        name = args.name or current.name
        base_url = args.base_url or current.base_url
        token = args.token or current.token
        validate_fields(name, base_url, token)
        p = store.edit(index, name, base_url, token)
    if p.is_active:
        print(f"[green]Profile '{escape(p.name)}' updated and re-applied.[/green]")
        print(escape(store.activator.describe()))
    else:
        print(f"[green]Profile '{escape(p.name)}' updated.[/green]")
    return 0

def cmd_switch(store, args):
    with store.locked():
        p = store.switch(resolve_index(store, args.profile))
    print(f"[green]Switched to profile '{escape(p.name)}'.[/green]")
    print(escape(store.activator.describe()))
    return 0

def cmd_delete(store, args):
    with store.locked():
        p = store.get(resolve_index(store, args.profile))
    if not args.yes:
        confirm = input(f"Delete profile '{p.name}'? (yes/NO): ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return 0
    # by id: the list may have changed while the prompt was open
    store.delete_id(p.id)
    print("[green]Profile deleted.[/green]")
    return 0

def cmd_gui(store, args):
    from .gui import run_gui
    return run_gui(store)

def cmd_serve(store, args):
    from .web.api import create_app
    app = create_app(store)
    app.run(host=args.host, port=args.port)
    return 0

def cmd_config(cfg, args):
    """Show preferences, or set / reset one of them."""
    if args.key is None:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Key")
        table.add_column("Value")
        for key in DEFAULTS:
            value = cfg.get(key)
            table.add_row(key, "[dim]default[/dim]" if value is None else escape(str(value)))
        print(table)
        return 0
    if args.key not in DEFAULTS:
        return fail(f"Unknown preference '{args.key}'. Known: {', '.join(DEFAULTS)}")
    if args.unset:
        value = DEFAULTS[args.key]
    elif args.value is None:
        value = cfg.get(args.key)
        print(f"{args.key} = {escape(str(value))}")
        return 0
    else:
        value = args.value
    if args.key == "target" and value not in TARGETS:
        return fail(f"target must be one of: {', '.join(TARGETS)}")
    if args.key == "log_level":
        value = str(value).upper()
        if value not in LOG_LEVELS:
            return fail(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
    # re-read so a --file override is never persisted
    stored = load_config()
    stored[args.key] = value
    save_config(stored)
    print(f"[green]{args.key} = {escape(str(value))}[/green]")
    return 0

def build_parser():
    parser = argparse.ArgumentParser(prog="ccswitch", description="Switch between Claude Code API profiles")
    parser.add_argument("--file", "-f", type=str, help="Path to the profiles file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", help="List profiles")
    ls.set_defaults(func=cmd_list)

    cur = sub.add_parser("current", help="Show the active profile")
    cur.set_defaults(func=cmd_current)

    add = sub.add_parser("add", help="Add a profile")
    add.add_argument("--name", type=str, help="Profile name")
    add.add_argument("--base-url", type=str, help="API base URL")
    add.add_argument("--token", type=str, help="API token (avoid passing via CLI in shared shells)")
    add.set_defaults(func=cmd_add)

    ed = sub.add_parser("edit", help="Edit a profile; re-applies it if active")
    ed.add_argument("profile", type=str, help="Profile number (from list) or id")
    ed.add_argument("--name", type=str, help="New name")
    ed.add_argument("--base-url", type=str, help="New base URL")
    ed.add_argument("--token", type=str, help="New token")
    ed.set_defaults(func=cmd_edit)

    sw = sub.add_parser("switch", help="Activate a profile")
    sw.add_argument("profile", type=str, help="Profile number (from list) or id")
    sw.set_defaults(func=cmd_switch)

    rm = sub.add_parser("delete", help="Delete an inactive profile")
    rm.add_argument("profile", type=str, help="Profile number (from list) or id")
    rm.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    rm.set_defaults(func=cmd_delete)

    cf = sub.add_parser("config", help="Show or change ccswitch preferences")
    cf.add_argument("key", type=str, nargs="?", help="Preference name")
    cf.add_argument("value", type=str, nargs="?", help="New value")
    cf.add_argument("--unset", action="store_true", help="Reset the preference to its default")
    cf.set_defaults(func=cmd_config, needs_store=False)

    gui = sub.add_parser("gui", help="Open the desktop window")
    gui.set_defaults(func=cmd_gui)

    srv = sub.add_parser("serve", help="Serve the local HTTP API")
    srv.add_argument("--host", type=str, default="127.0.0.1")
    srv.add_argument("--port", type=int, default=5757)
    srv.set_defaults(func=cmd_serve)
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    cfg = load_config()
    if args.file:
        cfg["profiles_path"] = args.file
    setup_logging("DEBUG" if args.verbose else cfg.get("log_level", "WARNING"))
    if not getattr(args, "needs_store", True):
        try:
            return args.func(cfg, args)
        except OSError as e:
            return fail(f"Failed to save preferences: {e}")
    try:
        store = open_store(cfg)
    except (OSError, ValueError) as e:
        return fail(f"Failed to load profiles: {e}")
    try:
        return args.func(store, args)
    except ProfileIndexError as e:
        return fail(f"Unknown profile '{args.profile}': {e}")
    except ActivationError as e:
        return fail(f"Profile saved but could not be applied: {e}")
    except (OSError, ValueError) as e:
        return fail(str(e))

if __name__ == "__main__":
    sys.exit(main())
