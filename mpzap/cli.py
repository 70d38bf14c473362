#!/usr/bin/env python3
"""
zap

Inspect and manage the filesystem of a MicroPython board over its serial REPL.

Usage:
  zap [--device DEVICE] [--baudrate BAUD] <command> [<args>...]
"""
import argparse
import logging
import os
import sys

from . import __version__, fs, terminal, transfer
from .config import load_config, resolve_settings, save_config
from .errors import ZapError
from .repl import connect

COMMANDS_NEEDING_DEVICE = [
    "cat", "cd", "get", "ls", "mkdir", "put", "pwd",
    "reboot", "repl", "rm", "rmdir", "upload", "device",
]


def open_session(settings):
    session = connect(settings["device"], settings["baudrate"], settings["timeout"])
    try:
        session.enter_raw()
    except Exception:
        session.close()
        raise
    return session


def run_in_raw_mode(settings, action):
    """Connect, enter raw mode, run action(session), always try to leave raw mode."""
    session = open_session(settings)
    try:
        return action(session)
    finally:
        try:
            session.exit_raw()
        except ZapError as e:
            print(f"Warning: could not leave raw mode: {e}", file=sys.stderr)
        session.close()


def stdout_sink():
    return sys.stdout.buffer


def cmd_cat(settings, args):
    def action(session):
        sink = stdout_sink()
        fs.cat(session, args.file, sink)
        sink.flush()
    run_in_raw_mode(settings, action)


def cmd_cd(settings, args):
    run_in_raw_mode(settings, lambda session: fs.cd(session, args.path))


def cmd_get(settings, args):
    src = args.src or args.dst
    n = run_in_raw_mode(settings, lambda session: transfer.get(session, args.dst, src, settings["chunk_size"]))
    print(f"Copied {n} bytes from ':{src}' to '{args.dst}'.")


def cmd_put(settings, args):
    src = args.src or args.dst
    n = run_in_raw_mode(settings, lambda session: transfer.put(session, args.dst, src, settings["chunk_size"]))
    print(f"Copied {n} bytes from '{src}' to ':{args.dst}'.")


def cmd_ls(settings, args):
    for name in run_in_raw_mode(settings, fs.ls):
        print(name)


def cmd_mkdir(settings, args):
    run_in_raw_mode(settings, lambda session: fs.mkdir(session, args.dir))


def cmd_rmdir(settings, args):
    run_in_raw_mode(settings, lambda session: fs.rmdir(session, args.dir))


def cmd_rm(settings, args):
    run_in_raw_mode(settings, lambda session: fs.rm(session, args.file))


def cmd_pwd(settings, args):
    print(run_in_raw_mode(settings, fs.pwd))


def cmd_reboot(settings, args):
    run_in_raw_mode(settings, lambda session: session.soft_reboot())
    print("Soft reboot complete.")


def cmd_upload(settings, args):
    local_dir = args.local_dir
    if not os.path.isdir(local_dir):
        raise NotADirectoryError(f"Local path '{local_dir}' is not a directory.")
    uploaded = run_in_raw_mode(
        settings, lambda session: transfer.upload(session, local_dir, settings["chunk_size"])
    )
    print(f"Directory upload processed. {len(uploaded)} files uploaded.")


def cmd_repl(settings, args):
    session = connect(settings["device"], settings["baudrate"], settings["timeout"])
    print("Entering REPL. Use Control-] to exit.")
    try:
        terminal.repl(session.transport)
    finally:
        session.close()
    print()


def check_device(settings):
    try:
        out = run_in_raw_mode(settings, lambda session: session.exec("import sys\nprint(sys.implementation.name, end='')"))
    except (ZapError, OSError) as e:
        return False, f"No response or error on {settings['device']}. Details: {e}"
    name = out.decode("utf-8", errors="replace")
    if "micropython" not in name.lower():
        return False, f"Connected to {settings['device']}, but unexpected response for MicroPython check: {name}"
    return True, f"MicroPython confirmed on {settings['device']} (sys.implementation.name: '{name}')."


def cmd_device(settings, args):
    if not args.port_name:
        print(f"Current device is {settings['device']}. Testing...")
        ok, msg = check_device(settings)
        print(msg)
        return 0 if ok else 1

    settings = dict(settings, device=args.port_name)
    ok, msg = check_device(settings)
    print(msg)
    if not ok and not args.force:
        print(f"Device test failed. To set {args.port_name} anyway, use --force.", file=sys.stderr)
        return 1

    cfg = load_config()
    cfg["device"] = args.port_name
    save_config(cfg)
    if ok:
        print(f"Device set to {args.port_name}.")
    else:
        print(f"Device set to {args.port_name} (forced).")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="zap",
        description="MicroPython CLI tool: manage files on a board over its serial REPL.",
        epilog="Use 'zap <command> --help' for more information on a specific command.",
    )
    parser.add_argument("--device", "-d", help="Serial device name of MicroPython board (env: PYBOARD_DEVICE).")
    parser.add_argument("--baudrate", "-b", type=int, help="Baudrate of serial device (env: PYBOARD_BAUDRATE, default: 115200).")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for each byte from the board (env: PYBOARD_TIMEOUT, default: 0.5).")
    parser.add_argument("--chunk-size", type=int, help="Bytes per round trip for get/put (env: PYBOARD_CHUNK_SIZE, default: 256).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log serial traffic to stderr.")
    parser.add_argument("--debug", action="store_true", help="Show full tracebacks on errors.")
    subparsers = parser.add_subparsers(dest="cmd", required=True, title="Available commands", metavar="<command>")

    p = subparsers.add_parser("cat", help="Read file")
    p.add_argument("file")
    p.set_defaults(func=cmd_cat)

    p = subparsers.add_parser("cd", help="Change directory")
    p.add_argument("path")
    p.set_defaults(func=cmd_cd)

    p = subparsers.add_parser("get", help="Copy a file from the device")
    p.add_argument("dst", help="Local destination file.")
    p.add_argument("src", nargs="?", default=None, help="Remote source file (default: same as dst).")
    p.set_defaults(func=cmd_get)

    p = subparsers.add_parser("help", help="Shows all commands or help for one command")
    p.add_argument("command", nargs="?", default=None)

    p = subparsers.add_parser("ls", help="List files")
    p.set_defaults(func=cmd_ls)

    p = subparsers.add_parser("mkdir", help="Make directory")
    p.add_argument("dir")
    p.set_defaults(func=cmd_mkdir)

    p = subparsers.add_parser("put", help="Copy a file to the device")
    p.add_argument("dst", help="Remote destination file.")
    p.add_argument("src", nargs="?", default=None, help="Local source file (default: same as dst).")
    p.set_defaults(func=cmd_put)

    p = subparsers.add_parser("pwd", help="Print working directory")
    p.set_defaults(func=cmd_pwd)

    p = subparsers.add_parser("reboot", help="Perform a soft reboot")
    p.set_defaults(func=cmd_reboot)

    p = subparsers.add_parser("repl", help="Open the MicroPython REPL")
    p.set_defaults(func=cmd_repl)

    p = subparsers.add_parser("rm", help="Delete file")
    p.add_argument("file")
    p.set_defaults(func=cmd_rm)

    p = subparsers.add_parser("rmdir", help="Remove directory")
    p.add_argument("dir")
    p.set_defaults(func=cmd_rmdir)

    p = subparsers.add_parser("upload", help="Copy all files in local directory to device")
    p.add_argument("local_dir", nargs="?", default=".", metavar="LOCAL_DIR")
    p.set_defaults(func=cmd_upload)

    p = subparsers.add_parser("device", help="Set or test the device used for operations.")
    p.add_argument("port_name", nargs="?", metavar="PORT", help="The device to set. If omitted, tests current.")
    p.add_argument("--force", "-f", action="store_true", help="Force set device even if test fails.")
    p.set_defaults(func=cmd_device)

    subparsers.add_parser("version", help="Print zap version")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.cmd == "help":
        if args.command:
            parser.parse_args([args.command, "--help"])
        parser.print_help()
        return 0
    if args.cmd == "version":
        print(__version__)
        return 0

    try:
        settings = resolve_settings({
            "device": args.device,
            "baudrate": args.baudrate,
            "timeout": args.timeout,
            "chunk_size": args.chunk_size,
        })
    except ValueError as e:
        parser.error(str(e))

    is_device_command_setting_port = args.cmd == "device" and args.port_name
    if args.cmd in COMMANDS_NEEDING_DEVICE and not settings["device"] and not is_device_command_setting_port:
        print("Error: No device selected or configured.", file=sys.stderr)
        print("Use --device, set PYBOARD_DEVICE, or run 'zap device <PORT>' to set one.", file=sys.stderr)
        return 1

    try:
        return args.func(settings, args) or 0
    except (ZapError, OSError) as e:
        if args.debug:
            raise
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
