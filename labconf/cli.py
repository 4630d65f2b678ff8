#!/usr/bin/env python3
# labconf/cli.py
"""
labconf command line.

    labconf insert PURPOSE PATH --line ANCHOR --line MEMBER ...
    labconf remove PURPOSE PATH --block-file block.txt
    labconf proxy --host squid.example.org --port 3128 --services env,apt
    labconf ssh-server --port 2222
    labconf power --settings suspend
    labconf conda --type miniforge --path /opt/miniforge3
    labconf samba-share alice bob --vnc
    labconf config show
    labconf config set proxy.port 8080

Exit codes: 0 success or nothing to do, 1 declined or a target failed,
2 bad input or an editor error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from labconf import __version__
from labconf.config.settings import get_config_value, load_config, set_config_value
from labconf.core.block_editor import SectionBlockEditor
from labconf.core.block_engine import BlockEditError, ContentBlock, InvalidBlock
from labconf.core.confirmers import AlwaysAcceptConfirmer
from labconf.modules.base import BlockModule
from labconf.modules.conda import CondaModule
from labconf.modules.power import PowerModule
from labconf.modules.proxy import ProxyModule, check_proxy
from labconf.modules.samba_share import SambaShareModule
from labconf.modules.ssh_server import SSHServerModule
from labconf.ui.colors import RED, maybe_colorize
from labconf.utils.log_utils import setup_logging

logger = logging.getLogger("LabConf.CLI")

EXIT_OK = 0
EXIT_DECLINED = 1
EXIT_ERROR = 2


def _error(message: str) -> int:
    color = sys.stderr.isatty()
    print(f"{maybe_colorize('Error:', RED, color)} {message}", file=sys.stderr)
    return EXIT_ERROR


def _build_editor(args, config: Dict[str, Any]) -> SectionBlockEditor:
    color = sys.stdout.isatty()
    if args.yes:
        return SectionBlockEditor(AlwaysAcceptConfirmer(), color=color)
    return SectionBlockEditor.from_settings(config, color=color)


def _read_block(args) -> ContentBlock:
    """
    --line wins over --block-file, which wins over stdin.

    A block file is decoded like the target files (undecodable bytes pass
    through unchanged); stdin that is not UTF-8 raises InvalidBlock.
    """
    if args.line:
        return ContentBlock(tuple(args.line))
    if args.block_file:
        text = Path(args.block_file).read_text(encoding="utf-8", errors="surrogateescape")
        return ContentBlock.from_text(text)
    try:
        text = sys.stdin.read()
    except UnicodeDecodeError as e:
        raise InvalidBlock(f"standard input is not valid UTF-8 ({e.reason})") from e
    return ContentBlock.from_text(text)


def _resolve_log_level(args, config: Dict[str, Any]) -> str:
    if args.debug:
        return "DEBUG"
    if args.quiet:
        return "ERROR"
    if args.log_level:
        return args.log_level
    return str(config["script"].get("log_level", "INFO"))


# =====================================================================
#  COMMANDS
# =====================================================================

def cmd_block(args, config: Dict[str, Any]) -> int:
    """insert / remove a block given on the command line."""
    try:
        block = _read_block(args)
    except InvalidBlock as e:
        return _error(f"Invalid block: {e}")
    except OSError as e:
        return _error(f"Cannot read block file: {e}")

    editor = _build_editor(args, config)
    try:
        if args.command == "insert":
            disposition = editor.insert(args.purpose, args.path, block)
        else:
            disposition = editor.remove(args.purpose, args.path, block)
    except BlockEditError as e:
        return _error(str(e))

    logger.debug(f"{args.purpose}: {disposition.value}")
    return disposition.exit_code


def _run_module(args, config: Dict[str, Any], module: BlockModule, remove: bool) -> int:
    editor = _build_editor(args, config)
    report = module.run(editor, remove=remove)
    for outcome in report.failed:
        print(
            f"{maybe_colorize('FAILED', RED, sys.stdout.isatty())} "
            f"{outcome.target.purpose} ({outcome.path}): {outcome.error}"
        )
    return report.exit_code


def cmd_proxy(args, config: Dict[str, Any]) -> int:
    proxy_cfg = config.get("proxy", {})
    host = args.host if args.host is not None else proxy_cfg.get("host", "")
    port = args.port if args.port is not None else proxy_cfg.get("port")
    services = args.services if args.services is not None else proxy_cfg.get("services")

    if args.check:
        try:
            reachable = check_proxy(host, port, url=args.url)
        except ValueError as e:
            return _error(str(e))
        return EXIT_OK if reachable else EXIT_DECLINED

    try:
        module = ProxyModule(host, port, services=services, root=args.root)
    except ValueError as e:
        return _error(str(e))
    return _run_module(args, config, module, remove=args.remove)


def cmd_ssh_server(args, config: Dict[str, Any]) -> int:
    port = args.port if args.port is not None else config.get("ssh_server", {}).get("port", 22)
    try:
        module = SSHServerModule(port=port, root=args.root)
    except ValueError as e:
        return _error(str(e))
    return _run_module(args, config, module, remove=args.cleanup)


def cmd_power(args, config: Dict[str, Any]) -> int:
    try:
        module = PowerModule(settings=args.settings, root=args.root)
    except ValueError as e:
        return _error(str(e))
    return _run_module(args, config, module, remove=args.remove)


def cmd_conda(args, config: Dict[str, Any]) -> int:
    conda_cfg = config["conda"]
    try:
        module = CondaModule(
            path=args.path or conda_cfg.get("path", ""),
            env_path=args.env_path or conda_cfg.get("env_path", ""),
            conda_type=args.type or conda_cfg.get("type", "miniconda"),
            mamba=args.mamba,
            root=args.root,
        )
    except ValueError as e:
        return _error(str(e))
    return _run_module(args, config, module, remove=args.remove)


def cmd_samba_share(args, config: Dict[str, Any]) -> int:
    net_shared_dir = args.net_shared_dir or config["samba"].get("net_shared_dir", "NetShared")
    try:
        module = SambaShareModule(
            args.users,
            net_shared_dir=net_shared_dir,
            home_base=args.home_base,
            vnc=args.vnc,
            root=args.root,
        )
    except ValueError as e:
        return _error(str(e))
    return _run_module(args, config, module, remove=args.remove)


def _parse_config_value(raw: str) -> Any:
    """JSON when it parses (8080, true, ["a"]), the plain string otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def cmd_config(args, config: Dict[str, Any]) -> int:
    """Inspect or change configuration."""
    if args.config_command == "show":
        print(json.dumps(config, indent=4))
        return EXIT_OK

    if args.config_command == "get":
        try:
            value = get_config_value(args.key, args.config)
        except KeyError:
            return _error(f"Unknown config key: {args.key}")
        print(value if isinstance(value, str) else json.dumps(value))
        return EXIT_OK

    if args.config_command == "set":
        try:
            saved = set_config_value(args.key, _parse_config_value(args.value), args.config)
        except ValueError as e:
            return _error(str(e))
        return EXIT_OK if saved else _error("Failed to save configuration")

    return _error("Missing config subcommand (try: labconf config show)")


# =====================================================================
#  CLI ENTRY WITH SUBCOMMANDS
# =====================================================================

def _add_block_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("purpose", help="Short description shown in prompts and logs")
    sub.add_argument("path", help="Target file")
    sub.add_argument(
        "--line",
        action="append",
        metavar="LINE",
        help="Block line, repeat in order (first is the anchor)"
    )
    sub.add_argument(
        "--block-file",
        metavar="FILE",
        help="Read the block from FILE (first line is the anchor)"
    )


def _add_root_argument(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--root",
        default="/",
        help="Apply system paths under this directory instead of / (default: /)"
    )


def _create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="labconf",
        description="Idempotent, previewed edits of anchored blocks in config files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  labconf insert "Proxy" /etc/apt/apt.conf.d/proxy.conf --line "# Proxy" --line 'Acquire::http::Proxy "http://h:3128";'
  labconf -y proxy --host squid.example.org --port 3128
  labconf proxy --check
  labconf ssh-server --port 2222 --cleanup
  labconf power --settings screen_blank --root /tmp/scratch
  labconf conda --type miniforge --path /opt/miniforge3
  labconf samba-share alice bob --vnc
  labconf config show
  labconf config set script.confirm_all true

A block read from stdin leaves no terminal for the Y/N prompt; combine it
with --yes.
        """
    )

    # Global options
    parser.add_argument(
        "--version",
        action="version",
        version=f"labconf {__version__}"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Config file (default: $LABCONF_CONFIG or ~/.config/labconf/config.json)"
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Apply every proposed change without asking"
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level"
    )
    verbosity.add_argument(
        "--quiet",
        action="store_true",
        help="Only log errors"
    )
    verbosity.add_argument(
        "--log-level",
        type=str,
        help="ERROR, WARNING, INFO, DEBUG or 0-3"
    )

    # Subcommands
    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    # insert / remove
    parser_insert = subparsers.add_parser(
        "insert",
        help="Make sure a block is present in a file"
    )
    _add_block_arguments(parser_insert)

    parser_remove = subparsers.add_parser(
        "remove",
        help="Strip a block's lines from a file"
    )
    _add_block_arguments(parser_remove)

    # proxy
    parser_proxy = subparsers.add_parser(
        "proxy",
        help="Configure system-wide proxy settings"
    )
    parser_proxy.add_argument("--host", help="Proxy host (default from config)")
    parser_proxy.add_argument("--port", help="Proxy port (default from config)")
    parser_proxy.add_argument(
        "--services",
        help="Comma-separated list of env, apt, git, ssh, dconf (default: all)"
    )
    parser_proxy.add_argument(
        "--remove",
        action="store_true",
        help="Remove proxy configuration instead of adding it"
    )
    parser_proxy.add_argument(
        "--check",
        action="store_true",
        help="Only test whether the proxy answers; no files are touched"
    )
    parser_proxy.add_argument(
        "--url",
        default="http://example.com",
        help="URL fetched by --check (default: http://example.com)"
    )
    _add_root_argument(parser_proxy)

    # ssh-server
    parser_ssh = subparsers.add_parser(
        "ssh-server",
        help="Configure the OpenSSH server"
    )
    parser_ssh.add_argument("--port", help="SSH port (default from config, 22)")
    parser_ssh.add_argument(
        "--cleanup",
        action="store_true",
        help="Remove the SSH server configuration"
    )
    _add_root_argument(parser_ssh)

    # power
    parser_power = subparsers.add_parser(
        "power",
        help="Disable screen blank and automatic suspend"
    )
    parser_power.add_argument(
        "--settings",
        help="Comma-separated list of screen_blank, suspend (default: all)"
    )
    parser_power.add_argument(
        "--remove",
        action="store_true",
        help="Remove power settings instead of adding them"
    )
    _add_root_argument(parser_power)

    # conda
    parser_conda = subparsers.add_parser(
        "conda",
        help="Initialize a shared conda installation for all users"
    )
    parser_conda.add_argument("--path", help="Conda installation directory (default from config)")
    parser_conda.add_argument("--env-path", help="Shared environment directory (default from config)")
    parser_conda.add_argument("--type", help="miniconda or miniforge (default from config)")
    mamba = parser_conda.add_mutually_exclusive_group()
    mamba.add_argument(
        "--mamba",
        dest="mamba",
        action="store_true",
        default=None,
        help="Add the mamba hook (default: only if the installation ships one)"
    )
    mamba.add_argument(
        "--no-mamba",
        dest="mamba",
        action="store_false",
        help="Never add the mamba hook"
    )
    parser_conda.add_argument(
        "--remove",
        action="store_true",
        help="Remove conda configuration instead of adding it"
    )
    _add_root_argument(parser_conda)

    # samba-share
    parser_samba = subparsers.add_parser(
        "samba-share",
        help="Share each user's net shared folder over Samba"
    )
    parser_samba.add_argument("users", nargs="+", help="User names")
    parser_samba.add_argument(
        "--net-shared-dir",
        help="Folder name inside each home (default from config, NetShared)"
    )
    parser_samba.add_argument(
        "--home-base",
        help="Use HOME_BASE/USER as home instead of looking users up"
    )
    parser_samba.add_argument(
        "--vnc",
        action="store_true",
        help="Also write ~/.vnc/xstartup for each user"
    )
    parser_samba.add_argument(
        "--remove",
        action="store_true",
        help="Remove the shares instead of adding them"
    )
    _add_root_argument(parser_samba)

    # config
    parser_config = subparsers.add_parser(
        "config",
        help="Inspect or change configuration"
    )
    config_sub = parser_config.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Print the effective configuration as JSON")
    parser_get = config_sub.add_parser("get", help="Print one value (dot notation: proxy.host)")
    parser_get.add_argument("key")
    parser_set = config_sub.add_parser("set", help="Store one value in the config file")
    parser_set.add_argument("key", help="Dot notation key, e.g. proxy.port")
    parser_set.add_argument("value", help="JSON value or plain string")

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point with subcommand routing."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    try:
        config = load_config(args.config)
    except ValueError as e:
        return _error(str(e))

    try:
        setup_logging(_resolve_log_level(args, config))
    except ValueError as e:
        return _error(str(e))

    logger.debug(f"labconf {__version__}: {args.command}")

    # Route to subcommand handlers
    if args.command in ("insert", "remove"):
        return cmd_block(args, config)
    elif args.command == "proxy":
        return cmd_proxy(args, config)
    elif args.command == "ssh-server":
        return cmd_ssh_server(args, config)
    elif args.command == "power":
        return cmd_power(args, config)
    elif args.command == "conda":
        return cmd_conda(args, config)
    elif args.command == "samba-share":
        return cmd_samba_share(args, config)
    elif args.command == "config":
        return cmd_config(args, config)
    else:
        parser.print_help()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main() or 0)
